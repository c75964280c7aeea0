import pytest

from walletwatch.errors import UserNotFound
from walletwatch.user_session import JsonFileStore, UserSession


@pytest.fixture
def file_store(tmp_path):
    return JsonFileStore(str(tmp_path / "state" / "session.json"))


@pytest.fixture
def user_id(server):
    return server.seed("test_table_login", {
        "first_name": "Ama", "last_name": "Owusu", "EmailAddress": "ama@x.com",
        "account_password": "pw123", "Currency": "GHS",
    })


@pytest.fixture
def session(client, file_store):
    return UserSession(client, file_store)


def test_json_file_store(file_store):
    assert file_store.get("missing", "dflt") == "dflt"

    file_store.set("a", {"b": 1})
    file_store.delete("nope")

    assert JsonFileStore(file_store.path).get("a") == {"b": 1}
    file_store.delete("a")
    assert file_store.get("a") is None


def test_json_file_store_tolerates_corrupt_file(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json")
    assert JsonFileStore(str(path)).get("currentUser") is None


def test_sign_in_persists_user(server, session, file_store, user_id):
    user = session.sign_in("ama@x.com", "pw123")

    assert session.is_logged_in
    assert user.user_id == user_id
    assert file_store.get(UserSession.USER_KEY)["email"] == "ama@x.com"


def test_failed_sign_in_keeps_state_empty(server, session, file_store, user_id):
    with pytest.raises(UserNotFound):
        session.sign_in("ama@x.com", "wrong")

    assert not session.is_logged_in
    assert file_store.get(UserSession.USER_KEY) is None


def test_restore_after_restart(server, client, session, file_store, user_id):
    session.sign_in("ama@x.com", "pw123")
    session.change_theme("Dark Mode")

    restored = UserSession(client, file_store)

    assert restored.restore().theme == "Dark Mode"
    assert restored.current_user.currency == "GHS"


def test_restore_discards_unreadable_user(session, file_store):
    file_store.set(UserSession.USER_KEY, {"email": 3})

    assert session.restore() is None
    assert not session.is_logged_in
    assert file_store.get(UserSession.USER_KEY) is None


def test_profile_changes_reach_server_and_local_state(server, client, session, user_id):
    session.sign_in("ama@x.com", "pw123")

    session.change_currency("EUR")
    session.change_expense_limit("amount", 250, "week")
    session.change_pay_day(20)

    fields = server.layouts["test_table_login"][user_id]["fieldData"]
    assert (fields["Currency"], fields["ExpenseLimitValue"], fields["PayDay"]) == ("EUR", 250, 20)
    user = session.current_user
    assert user.currency == "EUR"
    assert (user.expense_limit.type, user.expense_limit.value, user.expense_limit.period) == ("amount", 250, "week")
    assert user.pay_day == 20


def test_rejected_change_leaves_local_state(server, session, user_id):
    session.sign_in("ama@x.com", "pw123")

    with pytest.raises(ValueError):
        session.change_pay_day(31)

    assert session.current_user.pay_day is None


def test_categories_cache(server, session, file_store, user_id):
    server.seed("Category", {"UserID": user_id, "CategoryName": "Food", "IsActive": "1"})
    session.sign_in("ama@x.com", "pw123")

    cats = session.refresh_categories()

    assert [c.name for c in cats] == ["Food"]
    assert session.category_for(f" {cats[0].id} ").name == "Food"
    assert session.category_for("") is None
    assert file_store.get(UserSession.CATEGORIES_KEY)[0]["name"] == "Food"


def test_logout_clears_everything(server, client, session, file_store, user_id):
    session.sign_in("ama@x.com", "pw123")
    client.authenticate()

    session.logout()

    assert not session.is_logged_in
    assert file_store.get(UserSession.USER_KEY) is None
    assert not client.store.has()
    assert server.sessions == set()


def test_delete_account(server, session, file_store, user_id):
    session.sign_in("ama@x.com", "pw123")

    session.delete_account()

    assert user_id not in server.layouts["test_table_login"]
    assert not session.is_logged_in
    assert file_store.get(UserSession.USER_KEY) is None


def test_profile_change_requires_login(session):
    with pytest.raises(RuntimeError):
        session.change_currency("EUR")
