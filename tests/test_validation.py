import pytest

from utils.validation import MAX_PLAYER_ID_LENGTH, is_valid_name


@pytest.mark.parametrize("name", ["alice", "Ayşe Yılmaz", "Çağrı_01", "O'Neil", "  İpek  "])
def test_accepts_ordinary_names(name):
    assert is_valid_name(name)


@pytest.mark.parametrize("name", ["", "   ", "system", "<script>", "a;b", "x" * (MAX_PLAYER_ID_LENGTH + 1)])
def test_rejects_blank_reserved_and_odd_names(name):
    assert not is_valid_name(name)
