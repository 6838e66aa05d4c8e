"""create document table for the hub document store

Revision ID: 5c2a9e0d7f11
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2a9e0d7f11'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'document' in set(insp.get_table_names()):
        return

    op.create_table(
        'document',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('collection', sa.String(length=64), nullable=False),
        sa.Column('doc_id', sa.String(length=128), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.UniqueConstraint('collection', 'doc_id', name='uq_document_collection_doc_id'),
    )
    with op.batch_alter_table('document') as batch_op:
        batch_op.create_index('ix_document_collection', ['collection'], unique=False)


def downgrade():
    with op.batch_alter_table('document') as batch_op:
        batch_op.drop_index('ix_document_collection')
    op.drop_table('document')
