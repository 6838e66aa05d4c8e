from sideline import db


class Document(db.Model):
    """One JSON document in a named collection."""
    __tablename__ = 'document'
    __table_args__ = (
        db.UniqueConstraint('collection', 'doc_id', name='uq_document_collection_doc_id'),
    )
    id = db.Column(db.Integer, primary_key=True)
    collection = db.Column(db.String(64), nullable=False, index=True)
    doc_id = db.Column(db.String(128), nullable=False)
    data = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.BigInteger, nullable=False)
    updated_at = db.Column(db.BigInteger, nullable=False)
