import sys
import os
import pytest

# Ensure the project root is in the python path for all tests
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from engine import Lexicon, set_lexicon
from tests.fixtures.game_factory import WORDS, T0, make_session


@pytest.fixture
def lexicon():
    lex = Lexicon(WORDS)
    set_lexicon(lex)
    yield lex
    set_lexicon(None)


@pytest.fixture
def session():
    """Quiet session: no specials, empty racks, alice to move, empty board."""
    return make_session()


@pytest.fixture
def t0():
    return T0


@pytest.fixture
async def store(tmp_path):
    from infrastructure.notifier import LocalSessionNotifier
    from stores.sqlite_game_store import SqliteGameStore

    gs = SqliteGameStore(str(tmp_path / "test.sqlite3"), timeout=5.0, notifier=LocalSessionNotifier())
    await gs.init()
    yield gs
    await gs.close()
