from pathlib import Path

from certifyme.services.client_store import ClientStore, ExplanationEntry


def test_values_survive_reload(tmp_path: Path) -> None:
    path = tmp_path / "storage" / "client.json"
    store = ClientStore(str(path))
    store.set_token("tok")
    store.put_explanation(5, 0, ExplanationEntry(explanation_ua="ua", explanation_en="en"))
    store.mark_shown("7", "first_test")

    reloaded = ClientStore(str(path))

    assert reloaded.get_token() == "tok"
    assert reloaded.get_explanation(5, 0) == ExplanationEntry(explanation_ua="ua", explanation_en="en")
    assert reloaded.get_explanation(5, 1) is None
    assert reloaded.get_explanation(6, 0) is None
    assert reloaded.was_shown("7", "first_test")
    assert not reloaded.was_shown("8", "first_test")


def test_explanations_are_scoped_per_test(store) -> None:
    store.put_explanation(1, 0, ExplanationEntry(explanation_ua="a"))
    store.put_explanation(2, 0, ExplanationEntry(explanation_ua="b"))
    assert store.explanations(1) == {0: ExplanationEntry(explanation_ua="a")}
    assert store.explanations(2)[0].explanation_ua == "b"


def test_mark_shown_reports_first_time_only(store) -> None:
    assert store.mark_shown("7", "x") is True
    assert store.mark_shown("7", "x") is False
    assert store.mark_shown("8", "x") is True


def test_scoped_views_do_not_see_each_other(tmp_path: Path) -> None:
    path = tmp_path / "client.json"
    root = ClientStore(str(path))
    alice, bob = root.scoped("browser:a"), root.scoped("browser:b")

    alice.set_token("alice-token")
    alice.put_explanation(1, 0, ExplanationEntry(explanation_ua="a"))
    alice.mark_shown("7", "first_test")
    alice.set_last_paid_test(3)

    assert bob.get_token() is None
    assert bob.get_explanation(1, 0) is None
    assert not bob.was_shown("7", "first_test")
    assert bob.get_last_paid_test() is None
    assert root.get_token() is None

    reloaded = ClientStore(str(path)).scoped("browser:a")
    assert reloaded.get_token() == "alice-token"
    assert reloaded.explanations(1) == {0: ExplanationEntry(explanation_ua="a")}
    assert reloaded.get_last_paid_test() == 3


def test_clear_token(store) -> None:
    store.set_token("tok")
    store.set_token(None)
    assert store.get_token() is None


def test_corrupt_file_starts_empty(tmp_path: Path) -> None:
    path = tmp_path / "client.json"
    path.write_text("{not json", encoding="utf-8")
    assert ClientStore(str(path)).get_token() is None


def test_entry_text_falls_back_to_ukrainian() -> None:
    entry = ExplanationEntry(explanation_ua="тільки українською")
    assert entry.text("en") == "тільки українською"
    assert ExplanationEntry(explanation_ua="ua", explanation_en="en").text("en") == "en"
