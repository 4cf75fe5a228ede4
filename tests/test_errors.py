import pytest

from redisclusterkit.errors import (
    ClusterInfosError,
    NodeNotFoundError,
    is_inconsistent_error,
    is_node_not_found_error,
    is_partial_error,
)


def test_node_not_found_message():
    assert str(NodeNotFoundError()) == "node not founded"


def test_node_not_found_is_lookup_error():
    with pytest.raises(LookupError, match="node not founded") as excinfo:
        raise NodeNotFoundError()
    assert is_node_not_found_error(excinfo.value) is True


def test_is_node_not_found_error():
    assert is_node_not_found_error(NodeNotFoundError()) is True
    assert is_node_not_found_error(ValueError("x")) is False
    assert is_node_not_found_error(None) is False


def test_partial_error_message_contains_addresses():
    err = ClusterInfosError(errs={"10.0.0.1:6379": RuntimeError("boom")}, partial=True)
    text = str(err)
    assert text.startswith("Cluster infos partial: ")
    assert "10.0.0.1:6379: 'boom'" in text


def test_inconsistent_error_message():
    err = ClusterInfosError(inconsistent=True)
    assert str(err) == "Cluster view is inconsistent"


def test_empty_error_message():
    assert str(ClusterInfosError()) == ""


def test_partial_takes_precedence_in_message():
    err = ClusterInfosError(errs={}, partial=True, inconsistent=True)
    assert str(err) == "Cluster infos partial: "


def test_predicates():
    partial = ClusterInfosError(partial=True)
    inconsistent = ClusterInfosError(inconsistent=True)
    assert is_partial_error(partial) is True
    assert is_inconsistent_error(partial) is False
    assert is_inconsistent_error(inconsistent) is True
    assert is_partial_error(inconsistent) is False
    assert is_partial_error(NodeNotFoundError()) is False
    assert is_inconsistent_error(None) is False


def test_errs_are_copied():
    source = {"a:1": RuntimeError("x")}
    err = ClusterInfosError(errs=source, partial=True)
    source.clear()
    assert list(err.errs) == ["a:1"]