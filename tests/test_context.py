"""Unit tests for taskguardian.engine.context."""

import dataclasses

import pytest

from taskguardian.engine.context import RequestContext


class TestRequestContext:
    def test_request_id_generated(self):
        a = RequestContext(user_id="u1", role="ADMIN")
        b = RequestContext(user_id="u1", role="ADMIN")
        assert a.request_id.startswith("req_")
        assert a.request_id != b.request_id

    def test_frozen(self):
        ctx = RequestContext(user_id="u1", role="REGULAR")
        with pytest.raises(dataclasses.FrozenInstanceError):
            ctx.role = "ADMIN"
