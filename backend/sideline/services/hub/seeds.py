"""Static content loaded at startup: trivia pools and the opening prop bets."""

from .types import TriviaQuestion


MAIN_POINTS = 10
HALFTIME_POINTS = 25

MAIN_POOL = (
    TriviaQuestion('t1', 'Which team has the most championship game wins?', ['Patriots', 'Steelers', 'Cowboys', 'Chiefs'], 0, MAIN_POINTS),
    TriviaQuestion('t2', 'How many points is a safety worth?', ['1', '2', '3', '6'], 1, MAIN_POINTS),
    TriviaQuestion('t3', 'What trophy goes to the championship winner?', ['Stanley Cup', 'Lombardi Trophy', 'Heisman Trophy', 'Larry O\'Brien Trophy'], 1, MAIN_POINTS),
    TriviaQuestion('t4', 'How many players does each team have on the field?', ['9', '10', '11', '12'], 2, MAIN_POINTS),
    TriviaQuestion('t5', 'Which quarterback has the most championship rings?', ['Joe Montana', 'Tom Brady', 'Terry Bradshaw', 'Patrick Mahomes'], 1, MAIN_POINTS),
    TriviaQuestion('t6', 'How long is a regulation field between goal lines?', ['90 yards', '100 yards', '110 yards', '120 yards'], 1, MAIN_POINTS),
    TriviaQuestion('t7', 'Which city hosted the first championship game?', ['Miami', 'New Orleans', 'Los Angeles', 'Houston'], 2, MAIN_POINTS),
    TriviaQuestion('t8', 'What is a two-point conversion attempted from?', ['The 2-yard line', 'The 5-yard line', 'The 10-yard line', 'The 15-yard line'], 0, MAIN_POINTS),
)

HALFTIME_POOL = (
    TriviaQuestion('h1', 'Which artist performed the first halftime show with a solo headliner in 1993?', ['Prince', 'Michael Jackson', 'Madonna', 'Diana Ross'], 1, HALFTIME_POINTS, bonus=True),
    TriviaQuestion('h2', 'Roughly how long is a championship halftime break?', ['12 minutes', '20 minutes', '30 minutes', '45 minutes'], 2, HALFTIME_POINTS, bonus=True),
    TriviaQuestion('h3', 'Which halftime show featured a left shark?', ['Katy Perry', 'Lady Gaga', 'Beyonce', 'Rihanna'], 0, HALFTIME_POINTS, bonus=True),
    TriviaQuestion('h4', 'Which band played the halftime show after the 2007 season?', ['The Rolling Stones', 'Tom Petty and the Heartbreakers', 'U2', 'The Who'], 1, HALFTIME_POINTS, bonus=True),
)

INITIAL_PROPS = (
    {'id': '1', 'question': 'Who will win the coin toss?', 'category': 'Game', 'options': ['Heads', 'Tails']},
    {'id': '2', 'question': 'National Anthem length (Over/Under 122.5 seconds)?', 'category': 'Entertainment', 'options': ['Over', 'Under']},
    {'id': '3', 'question': 'Total passing yards for the winning QB?', 'category': 'Stats', 'options': ['Under 250', '250-300', 'Over 300']},
    {'id': '4', 'question': 'Which color Gatorade will be poured on the winning coach?', 'category': 'Entertainment', 'options': ['Orange', 'Blue', 'Clear', 'Yellow', 'Purple', 'Red']},
    {'id': '5', 'question': 'Will there be a defensive or special teams touchdown?', 'category': 'Game', 'options': ['Yes', 'No']},
    {'id': '6', 'question': 'Total points scored in the first half?', 'category': 'Stats', 'options': ['Over 24.5', 'Under 24.5']},
    {'id': '7', 'question': 'Will a quarterback run for a touchdown?', 'category': 'Player', 'options': ['Yes', 'No']},
)
