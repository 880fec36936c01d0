import uuid

import pytest

from saphir.errors import RequestMovedBeforeHandler, ResponseMoved
from saphir.http_context import (
    HandlerMetadata,
    HttpContext,
    OperationId,
    Phase,
    RouteId,
    State,
)


def test_state_take_leaves_empty():
    state = State.before("req")
    taken = state.take()
    assert taken.phase is Phase.BEFORE
    assert taken.value == "req"
    assert state.is_empty


def test_take_request_from_before():
    state = State.before("req")
    assert state.take_request() == "req"
    assert state.phase is Phase.EMPTY


def test_take_request_from_after_gives_none_and_empties():
    state = State.after("resp")
    assert state.take_request() is None
    assert state.is_empty


def test_take_response():
    state = State.after("resp")
    assert state.take_response() == "resp"
    assert state.take_response() is None


def test_request_and_response_accessors():
    state = State.before("req")
    assert state.request() == "req"
    assert state.response() is None
    assert state.phase is Phase.BEFORE


def test_require_request_raises_when_missing():
    with pytest.raises(RequestMovedBeforeHandler):
        State.after("resp").require_request()
    assert State.before("req").require_request() == "req"


def test_require_response_raises_when_missing():
    with pytest.raises(ResponseMoved):
        State().require_response()
    assert State.after("resp").require_response() == "resp"


def test_route_id_default_is_not_found():
    assert RouteId() == RouteId.error(404)
    assert RouteId.of(3).is_error is False


def test_metadata_constructors():
    assert HandlerMetadata.not_found().route_id == RouteId.error(404)
    assert HandlerMetadata.not_allowed().route_id == RouteId.error(405)
    assert HandlerMetadata() == HandlerMetadata.not_found()


def test_operation_id_round_trip():
    op = OperationId.new()
    assert OperationId.parse(str(op)) == op
    assert op.to_int() == op.uuid.int


def test_operation_id_invalid():
    with pytest.raises(ValueError):
        OperationId.parse("not-a-uuid")


def test_operation_id_default_is_nil():
    assert OperationId().to_int() == 0


def test_for_request_uses_header():
    op = OperationId.new()
    ctx = HttpContext.for_request("req", {"operation-id": str(op)}, None, "router")
    assert ctx.operation_id == op
    assert ctx.state.request() == "req"
    assert ctx.router == "router"


def test_for_request_invalid_header_generates_new():
    ctx = HttpContext.for_request("req", {"Operation-Id": "garbage"})
    assert isinstance(ctx.operation_id.uuid, uuid.UUID)
    assert OperationId.parse(str(ctx.operation_id)) == ctx.operation_id
    assert ctx.operation_id.to_int() > 0
    assert ctx.state.request() == "req"


def test_for_request_sets_request_operation_id():
    class Req:
        operation_id = None

    req = Req()
    ctx = HttpContext.for_request(req, {})
    assert req.operation_id == ctx.operation_id


def test_clone_with_empty_state():
    meta = HandlerMetadata(RouteId.of(7), "handler")
    ctx = HttpContext.for_request("req", {}, meta, "router")
    clone = ctx.clone_with_empty_state()
    assert clone.state.is_empty
    assert clone.metadata == meta
    assert clone.operation_id == ctx.operation_id
    assert clone.router == "router"
    assert ctx.state.request() == "req"


def test_before_and_after():
    ctx = HttpContext()
    ctx.before("req")
    assert ctx.state.require_request() == "req"
    ctx.after("resp")
    assert ctx.state.require_response() == "resp"
    assert ctx.state.request() is None