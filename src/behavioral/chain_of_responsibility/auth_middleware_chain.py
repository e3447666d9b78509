from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

__all__ = [
    "ChainConfigurationError",
    "RateLimitExceededError",
    "Credentials",
    "ThrottlePolicy",
    "Middleware",
    "UserExistsMiddleware",
    "RoleCheckMiddleware",
    "ThrottlingMiddleware",
    "Server",
    "build_middleware_chain",
    "main",
]

# ==========================
# Module: auth_middleware_chain
# Purpose: Chain of Responsibility as an authentication middleware pipeline.
#          Each middleware either rejects (False), accepts and stops (True),
#          or delegates; the Server runs the chain before logging a user in.
# ==========================

DEFAULT_ADMIN_EMAIL = "admin@example.com"


# ---------- Errors & Config ----------

class ChainConfigurationError(ValueError):
    """
    Raised when middleware is wired into something other than a finite, acyclic chain.
    """


class RateLimitExceededError(RuntimeError):
    """
    Fatal: too many checks inside one throttling window.

    Unlike an ordinary rejection this is not meant to be retried; the host
    process decides how to shut down.

    :param limit: Allowed checks per window.
    :param window_seconds: Window length in seconds.
    """

    def __init__(self, limit: int, window_seconds: float) -> None:
        super().__init__(f"More than {limit} requests within {window_seconds:g} seconds.")
        self.limit = limit
        self.window_seconds = window_seconds


@dataclass(frozen=True, slots=True)
class Credentials:
    """
    Email/password pair submitted by a client. Never stored.
    """
    email: str
    password: str


@dataclass
class ThrottlePolicy:
    """
    Throttling configuration.

    :param requests_per_minute: Checks allowed per window before the fatal abort.
    :param window_seconds: Window length; the counter resets once it has elapsed.
    """
    requests_per_minute: int = 2
    window_seconds: float = 60


# ---------- Base Middleware ----------

class Middleware:
    """
    Base link of the authentication chain.

    The base `check` only delegates: with no next link it returns True, so a
    bare `Middleware()` is the empty chain and authorizes everything.
    Subclasses override `check` and call `super().check(...)` to delegate,
    either before or after their own logic.
    """

    def __init__(self) -> None:
        self._next: Optional[Middleware] = None

    @property
    def name(self) -> str:
        return type(self).__name__

    def link_with(self, nxt: "Middleware") -> "Middleware":
        """
        Links the next middleware and returns it to allow fluent chain construction.

        :param nxt: Next middleware in the chain.
        :return: The provided middleware.
        :raises ChainConfigurationError: If linking would close a cycle.
        """
        if any(link is self for link in nxt.iter_chain()):
            raise ChainConfigurationError(f"Linking {self.name} -> {nxt.name} would create a cycle")
        self._next = nxt
        return nxt

    def iter_chain(self) -> Iterator["Middleware"]:
        link: Optional[Middleware] = self
        while link is not None:
            yield link
            link = link._next

    def check(self, email: str, password: str) -> bool:
        """
        Runs the rest of the chain.

        :param email: Submitted email.
        :param password: Submitted password.
        :return: True if every remaining link passes (or there is none).
        """
        if self._next is None:
            return True
        logger.debug("%s: delegating to %s", self.name, self._next.name)
        return self._next.check(email, password)


# ---------- Concrete Middleware ----------

class UserExistsMiddleware(Middleware):
    """
    Rejects unknown emails and wrong passwords.

    :param server: Server owning the registered credentials.
    """

    def __init__(self, server: "Server") -> None:
        super().__init__()
        self._server = server

    def check(self, email: str, password: str) -> bool:
        if not self._server.has_email(email):
            logger.info("UserExistsMiddleware: This email is not registered!")
            return False

        if not self._server.is_valid_password(email, password):
            logger.info("UserExistsMiddleware: Wrong password!")
            return False

        return super().check(email, password)


class RoleCheckMiddleware(Middleware):
    """
    Lets the admin straight through; everyone else continues down the chain.

    The admin short-circuit means links after this one are never consulted
    for the admin identity.

    :param admin_email: Email treated as the administrator.
    """

    def __init__(self, admin_email: str = DEFAULT_ADMIN_EMAIL) -> None:
        super().__init__()
        self._admin_email = admin_email

    def check(self, email: str, password: str) -> bool:
        if email == self._admin_email:
            logger.info("RoleCheckMiddleware: Hello, admin!")
            return True
        logger.info("RoleCheckMiddleware: Hello, user!")

        return super().check(email, password)


class ThrottlingMiddleware(Middleware):
    """
    Counts every check inside a fixed window and aborts once the limit is passed.

    The counter is bumped before delegating, so throttling applies to
    failed attempts as well as successful ones.

    :param requests_per_minute: Shorthand for `ThrottlePolicy(requests_per_minute=...)`.
    :param policy: Full throttling configuration; wins over `requests_per_minute`.
    :param clock: Returns the current time in seconds; `time.time` by default.
    """

    def __init__(self,
                 requests_per_minute: Optional[int] = None,
                 policy: Optional[ThrottlePolicy] = None,
                 clock: Callable[[], float] = time.time) -> None:
        super().__init__()
        if policy is None:
            policy = ThrottlePolicy() if requests_per_minute is None \
                else ThrottlePolicy(requests_per_minute=requests_per_minute)
        if policy.requests_per_minute < 0:
            raise ValueError("requests_per_minute must be non-negative.")
        if policy.window_seconds <= 0:
            raise ValueError("window_seconds must be positive.")
        self._policy = policy
        self._clock = clock
        self._window_start = clock()
        self._count = 0

    @property
    def count(self) -> int:
        """
        :return: Checks counted in the current window.
        """
        return self._count

    def check(self, email: str, password: str) -> bool:
        now = self._clock()
        if now > self._window_start + self._policy.window_seconds:
            logger.debug("ThrottlingMiddleware: window expired, resetting counter")
            self._count = 0
            self._window_start = now

        self._count += 1

        if self._count > self._policy.requests_per_minute:
            logger.error("ThrottlingMiddleware: Request limit exceeded!")
            raise RateLimitExceededError(self._policy.requests_per_minute, self._policy.window_seconds)

        return super().check(email, password)


# ---------- Application ----------

class Server:
    """
    Application endpoint and credential store.

    The server runs the configured middleware chain before doing anything
    for the user. Without a configured chain it behaves as the empty chain.
    """

    def __init__(self) -> None:
        self._users: Dict[str, str] = {}
        self._middleware: Optional[Middleware] = None

    def set_middleware(self, middleware: Middleware) -> None:
        """
        :param middleware: Head of the chain to run on every login.
        """
        self._middleware = middleware

    def log_in(self, email: str, password: str) -> bool:
        """
        Sends the credentials through the middleware chain.

        :param email: Submitted email.
        :param password: Submitted password.
        :return: True if authorized.
        :raises RateLimitExceededError: When a throttling link aborts.
        """
        middleware = self._middleware or Middleware()
        if middleware.check(email, password):
            logger.info("Server: Authorization successful!")
            return True
        return False

    def register(self, email: str, password: str) -> None:
        self._users[email] = password

    def has_email(self, email: str) -> bool:
        return email in self._users

    def is_valid_password(self, email: str, password: str) -> bool:
        return email in self._users and self._users[email] == password


def build_middleware_chain(*links: Middleware) -> Middleware:
    """
    Links middleware in the given order via `link_with`.

    :param links: Middleware to link, head first.
    :return: Head of the chain; a bare `Middleware()` when no links are given.
    """
    if not links:
        return Middleware()
    head = links[0]
    current = head
    for link in links[1:]:
        current = current.link_with(link)
    return head


# ---------- Demo ----------

def _read_credentials(input_fn: Callable[[str], str]) -> Credentials:
    email = input_fn("\nEnter your email:\n")
    password = input_fn("Enter your password:\n")
    return Credentials(email.strip(), password.strip())


def main(input_fn: Callable[[str], str] = input) -> int:
    """
    Interactive login loop.

    :param input_fn: Line reader, `input` by default.
    :return: 0 after a successful login, 1 if input runs out, 2 on the throttling abort.
    """
    logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stdout)

    server = Server()
    server.register("admin@example.com", "admin_pass")
    server.register("user@example.com", "user_pass")

    server.set_middleware(build_middleware_chain(
        ThrottlingMiddleware(2),
        UserExistsMiddleware(server),
        RoleCheckMiddleware(),
    ))

    while True:
        try:
            credentials = _read_credentials(input_fn)
        except EOFError:
            logger.warning("Input closed before a successful login.")
            return 1
        try:
            if server.log_in(credentials.email, credentials.password):
                return 0
        except RateLimitExceededError as exc:
            logger.error("Aborting: %s", exc)
            return 2


if __name__ == "__main__":
    sys.exit(main())
