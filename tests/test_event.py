from sentrykit.event import (
    TRANSACTION_TYPE,
    Event,
    Level,
    Request,
    User,
)


def test_empty_user_is_empty():
    assert User().is_empty() is True


def test_user_with_id_is_not_empty():
    assert User(id="1337").is_empty() is False


def test_user_with_only_data_is_not_empty():
    assert User(data={"foo": "bar"}).is_empty() is False


def test_level_values_match_wire_format():
    assert Level("fatal") is Level.FATAL
    assert Event(level=Level("info")).level == "info"


def test_event_defaults_are_not_shared():
    first = Event()
    second = Event()
    first.tags["a"] = "b"
    first.fingerprint.append("x")
    assert second.tags == {}
    assert second.fingerprint == []


def test_event_default_user_is_empty():
    assert Event().user.is_empty()


def test_request_equality_ignores_body():
    import io

    with_body = Request(url="/foo", method="GET", body=io.BytesIO(b"x"))
    without_body = Request(url="/foo", method="GET")
    assert with_body == without_body


def test_transaction_type_constant():
    assert Event(type=TRANSACTION_TYPE).type == "transaction"