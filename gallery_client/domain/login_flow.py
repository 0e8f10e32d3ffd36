"""
Login flow: submit credentials and validate the resulting session.

A login counts as successful only if the session cookie store reports
a logged-in identity afterwards; a response without the expected
session cookies ends in ``failed(UnknownError)``.
"""

from dataclasses import dataclass, field
from typing import Optional, Protocol, Union

import httpx

from gallery_client.core.exceptions import FetchError, UnknownError
from gallery_client.core.logging import get_logger
from gallery_client.domain.cancellation import CancellableTasks
from gallery_client.domain.models import LoadState
from gallery_client.domain.session_cookies import SessionCookieStore

logger = get_logger(__name__)

LOGIN_CANCEL_ID = "login"

LoginResult = Union[Optional[httpx.Response], FetchError]


class LoginExecutor(Protocol):
    async def login(self, username: str, password: str) -> Optional[httpx.Response]:
        ...


@dataclass
class LoginState:
    username: str = ""
    password: str = ""
    login_state: LoadState = field(default_factory=LoadState.idle)

    @property
    def login_disabled(self) -> bool:
        return not self.username or not self.password


class LoginController:
    """Drives one login form."""

    def __init__(self, executor: LoginExecutor, cookies: SessionCookieStore) -> None:
        self._executor = executor
        self._cookies = cookies
        self.state = LoginState()
        self._tasks = CancellableTasks("login")

    def login(self) -> None:
        """Submit the current credentials. Ignored while loading or if a field is empty."""
        state = self.state
        if state.login_disabled or state.login_state.is_loading:
            return

        state.login_state = LoadState.loading()
        username, password = state.username, state.password
        logger.info("Logging in as username=%s", username)

        self._tasks.launch(
            LOGIN_CANCEL_ID,
            lambda: self._executor.login(username, password),
            self.on_login_completed,
        )

    def on_login_completed(self, result: LoginResult) -> None:
        if isinstance(result, httpx.Response):
            self._cookies.ingest_set_cookie_header(result.headers.get("set-cookie"))
        elif isinstance(result, FetchError):
            logger.warning("Login request failed: %s", result.message)

        if self._cookies.is_logged_in:
            self.state.login_state = LoadState.idle()
            logger.info("Login succeeded (member id=%s)", self._cookies.api_user_id)
        else:
            self.state.login_state = LoadState.failed(UnknownError("Login did not yield a session"))
            logger.warning("Login finished without session cookies")

    def teardown(self) -> None:
        self._tasks.cancel(LOGIN_CANCEL_ID)
        if self.state.login_state.is_loading:
            self.state.login_state = LoadState.idle()

    async def wait_idle(self) -> None:
        await self._tasks.wait_idle()
