import pytest

from autofix import print_access_token
from autofix.auth import jwt_handler


def test_prints_token_for_registered_user(booking_db, client_user, monkeypatch, capsys) -> None:
    monkeypatch.setattr(print_access_token, 'SessionLocal', lambda: booking_db)

    print_access_token.main(['ANA@example.com'])

    token = capsys.readouterr().out.strip()
    assert jwt_handler.decode_access_token(token)['sub'] == 'ana@example.com'


def test_exits_when_user_is_unknown(booking_db, monkeypatch, capsys) -> None:
    monkeypatch.setattr(print_access_token, 'SessionLocal', lambda: booking_db)

    with pytest.raises(SystemExit) as exit_info:
        print_access_token.main(['ghost@example.com'])

    assert exit_info.value.code == 1
    assert 'ghost@example.com' in capsys.readouterr().err


def test_exits_with_usage_without_email() -> None:
    with pytest.raises(SystemExit) as exit_info:
        print_access_token.main([])

    assert exit_info.value.code == 2
