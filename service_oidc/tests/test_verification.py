"""
Tests for verify callable dispatch.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from service_oidc.app.profile import AuthContext, Profile
from service_oidc.app.verification import VerificationDispatcher, VerificationInput, VerifyShape


@pytest.fixture
def data():
    """Verification input with every member set."""
    return VerificationInput(
        issuer="https://op.example",
        profile=Profile(id="merged"),
        id_profile=Profile(id="id"),
        ui_profile=Profile(id="ui"),
        context=AuthContext(),
        id_token="it",
        access_token="at",
        refresh_token="rt",
        params={"id_token": "it"},
        request="request",
    )


class TestVerificationDispatcher:
    """Test cases for VerificationDispatcher."""

    def test_requires_callable(self):
        """Test verify must be callable."""
        with pytest.raises(TypeError):
            VerificationDispatcher("not callable")

    @pytest.mark.parametrize("shape,expected", [
        (VerifyShape.PROFILE, ("https://op.example", "merged")),
        (VerifyShape.CONTEXT, ("https://op.example", "merged", "ctx")),
        (VerifyShape.ID_TOKEN, ("https://op.example", "merged", "ctx", "it")),
        (VerifyShape.TOKENS, ("https://op.example", "merged", "ctx", "it", "at", "rt")),
        (VerifyShape.PARAMS, ("https://op.example", "merged", "ctx", "it", "at", "rt", "params")),
        (VerifyShape.SEPARATE_PROFILES,
         ("https://op.example", "ui", "id", "ctx", "it", "at", "rt", "params")),
    ])
    def test_arguments_per_shape(self, data, shape, expected):
        """Test each shape receives its positional arguments."""
        args = VerificationDispatcher(MagicMock(), shape).arguments(data)

        def label(value):
            if isinstance(value, Profile):
                return value.id
            if isinstance(value, AuthContext):
                return "ctx"
            if isinstance(value, dict):
                return "params"
            return value

        assert tuple(label(a) for a in args) == expected

    def test_request_prepended(self, data):
        """Test pass_req_to_callback puts the request first."""
        args = VerificationDispatcher(MagicMock(), VerifyShape.PROFILE, pass_req_to_callback=True).arguments(data)
        assert args[0] == "request"
        assert len(args) == 3

    def test_shape_from_string(self):
        """Test shapes can be given by value."""
        assert VerificationDispatcher(MagicMock(), "tokens").shape is VerifyShape.TOKENS

    @pytest.mark.asyncio
    async def test_dispatch_sync_user(self, data):
        """Test a sync verify returning a bare user."""
        verify = MagicMock(return_value={"id": "1"})
        assert await VerificationDispatcher(verify).dispatch(data) == ({"id": "1"}, None)
        verify.assert_called_once_with("https://op.example", data.profile)

    @pytest.mark.asyncio
    async def test_dispatch_async_with_info(self, data):
        """Test an async verify returning (user, info)."""
        verify = AsyncMock(return_value=({"id": "1"}, {"scope": "read"}))
        assert await VerificationDispatcher(verify).dispatch(data) == ({"id": "1"}, {"scope": "read"})

    @pytest.mark.asyncio
    async def test_dispatch_rejection(self, data):
        """Test a falsy user with a message."""
        verify = MagicMock(return_value=(False, {"message": "Unknown user"}))
        user, info = await VerificationDispatcher(verify).dispatch(data)
        assert user is False
        assert info == {"message": "Unknown user"}

    @pytest.mark.asyncio
    async def test_dispatch_bad_tuple(self, data):
        """Test tuples other than (user, info) are refused."""
        verify = MagicMock(return_value=(1, 2, 3))
        with pytest.raises(TypeError):
            await VerificationDispatcher(verify).dispatch(data)

    @pytest.mark.asyncio
    async def test_dispatch_error_propagates(self, data):
        """Test exceptions from verify are not swallowed."""
        verify = AsyncMock(side_effect=RuntimeError("database down"))
        with pytest.raises(RuntimeError):
            await VerificationDispatcher(verify).dispatch(data)


class TestShouldLoadUserProfile:
    """Test cases for the userinfo loading decision."""

    @pytest.mark.asyncio
    async def test_default_depends_on_shape(self):
        """Test only the separate-profiles shape loads userinfo by default."""
        for shape in VerifyShape:
            dispatcher = VerificationDispatcher(MagicMock(), shape)
            expected = shape is VerifyShape.SEPARATE_PROFILES
            assert await dispatcher.should_load_user_profile(None, None, {}) is expected

    @pytest.mark.asyncio
    async def test_boolean(self):
        """Test a boolean skip flag."""
        dispatcher = VerificationDispatcher(MagicMock())
        assert await dispatcher.should_load_user_profile(False, None, {}) is True
        assert await dispatcher.should_load_user_profile(True, None, {}) is False

    @pytest.mark.asyncio
    async def test_sync_predicate(self):
        """Test a predicate receives the request and claims."""
        predicate = MagicMock(return_value=False)
        dispatcher = VerificationDispatcher(MagicMock())

        assert await dispatcher.should_load_user_profile(predicate, "request", {"sub": "1"}) is True
        predicate.assert_called_once_with("request", {"sub": "1"})

    @pytest.mark.asyncio
    async def test_async_predicate(self):
        """Test an async predicate is awaited."""
        predicate = AsyncMock(return_value=True)
        dispatcher = VerificationDispatcher(MagicMock(), VerifyShape.SEPARATE_PROFILES)
        assert await dispatcher.should_load_user_profile(predicate, None, {}) is False
