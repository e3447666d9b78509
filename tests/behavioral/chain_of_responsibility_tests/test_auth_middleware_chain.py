import logging

import pytest
from behavioral.chain_of_responsibility.auth_middleware_chain import (
    Server, Middleware, UserExistsMiddleware, RoleCheckMiddleware, ThrottlingMiddleware,
    ThrottlePolicy, RateLimitExceededError, ChainConfigurationError, build_middleware_chain, main,
)

LOGGER = "behavioral.chain_of_responsibility.auth_middleware_chain"


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Recorder(Middleware):
    def __init__(self):
        super().__init__()
        self.calls = 0

    def check(self, email, password):
        self.calls += 1
        return super().check(email, password)


def make_server():
    s = Server()
    s.register("admin@example.com", "admin_pass")
    s.register("user@example.com", "user_pass")
    return s


def messages(caplog):
    return [r.getMessage() for r in caplog.records if r.name == LOGGER and r.levelno >= logging.INFO]


@pytest.mark.unit
def test_empty_chain_authorizes_everything():
    assert Middleware().check("nobody@example.com", "") is True
    assert build_middleware_chain().check("x", "y") is True


@pytest.mark.unit
def test_server_without_middleware_authorizes(caplog):
    caplog.set_level(logging.INFO)
    assert Server().log_in("anyone", "anything") is True
    assert messages(caplog) == ["Server: Authorization successful!"]


@pytest.mark.unit
def test_admin_passes_and_wrong_password_fails_before_role_check(caplog):
    caplog.set_level(logging.INFO)
    s = make_server()
    chain = build_middleware_chain(ThrottlingMiddleware(2, clock=FakeClock()), UserExistsMiddleware(s), RoleCheckMiddleware())
    assert chain.check("admin@example.com", "admin_pass") is True
    assert chain.check("admin@example.com", "wrong") is False
    assert messages(caplog) == ["RoleCheckMiddleware: Hello, admin!", "UserExistsMiddleware: Wrong password!"]


@pytest.mark.unit
def test_unknown_email_is_rejected(caplog):
    caplog.set_level(logging.INFO)
    s = make_server()
    s.set_middleware(UserExistsMiddleware(s))
    assert s.log_in("ghost@example.com", "x") is False
    assert messages(caplog) == ["UserExistsMiddleware: This email is not registered!"]


@pytest.mark.unit
def test_admin_short_circuits_downstream_links():
    recorder = Recorder()
    chain = build_middleware_chain(RoleCheckMiddleware(), recorder)
    assert chain.check("admin@example.com", "whatever") is True
    assert recorder.calls == 0
    assert chain.check("user@example.com", "whatever") is True
    assert recorder.calls == 1


@pytest.mark.unit
def test_custom_admin_identity():
    recorder = Recorder()
    chain = build_middleware_chain(RoleCheckMiddleware(admin_email="root@corp"), recorder)
    chain.check("admin@example.com", "p")
    assert recorder.calls == 1


@pytest.mark.unit
def test_regular_user_logs_in_through_server(caplog):
    caplog.set_level(logging.INFO)
    s = make_server()
    s.set_middleware(build_middleware_chain(UserExistsMiddleware(s), RoleCheckMiddleware()))
    assert s.log_in("user@example.com", "user_pass") is True
    assert messages(caplog) == ["RoleCheckMiddleware: Hello, user!", "Server: Authorization successful!"]


@pytest.mark.unit
def test_throttling_third_call_in_window_is_fatal():
    clock = FakeClock()
    throttle = ThrottlingMiddleware(2, clock=clock)
    assert throttle.check("a", "b") is True
    clock.advance(30)
    assert throttle.check("a", "b") is True
    with pytest.raises(RateLimitExceededError) as exc_info:
        throttle.check("a", "b")
    assert exc_info.value.limit == 2 and exc_info.value.window_seconds == 60


@pytest.mark.unit
def test_throttling_counts_failed_attempts():
    s = make_server()
    s.set_middleware(build_middleware_chain(ThrottlingMiddleware(2, clock=FakeClock()), UserExistsMiddleware(s)))
    assert s.log_in("user@example.com", "bad") is False
    assert s.log_in("user@example.com", "bad") is False
    with pytest.raises(RateLimitExceededError):
        s.log_in("user@example.com", "user_pass")


@pytest.mark.unit
def test_throttling_window_reset():
    clock = FakeClock()
    throttle = ThrottlingMiddleware(2, clock=clock)
    throttle.check("a", "b")
    throttle.check("a", "b")
    clock.advance(60)  # still inside: reset needs now > start + 60
    with pytest.raises(RateLimitExceededError):
        throttle.check("a", "b")

    clock.advance(0.5)
    assert throttle.check("a", "b") is True
    assert throttle.count == 1


@pytest.mark.unit
def test_throttle_policy_configures_window():
    clock = FakeClock()
    throttle = ThrottlingMiddleware(policy=ThrottlePolicy(requests_per_minute=1, window_seconds=5), clock=clock)
    throttle.check("a", "b")
    clock.advance(6)
    assert throttle.check("a", "b") is True


@pytest.mark.unit
def test_throttle_rejects_bad_policy():
    with pytest.raises(ValueError):
        ThrottlingMiddleware(policy=ThrottlePolicy(window_seconds=0))


@pytest.mark.unit
def test_failing_checks_do_not_touch_the_store():
    s = make_server()
    chain = UserExistsMiddleware(s)
    for _ in range(3):
        assert chain.check("user@example.com", "nope") is False
        assert chain.check("new@example.com", "pw") is False
    assert s.has_email("new@example.com") is False
    assert s.is_valid_password("user@example.com", "user_pass") is True


@pytest.mark.unit
def test_link_with_is_fluent_and_rejects_cycles():
    a, b = Middleware(), Middleware()
    assert a.link_with(b) is b
    with pytest.raises(ChainConfigurationError):
        b.link_with(a)
    with pytest.raises(ChainConfigurationError):
        a.link_with(a)


@pytest.mark.unit
def test_demo_retries_until_login(caplog):
    caplog.set_level(logging.INFO)
    lines = iter(["user@example.com", "oops", "user@example.com", "user_pass"])
    assert main(lambda prompt: next(lines)) == 0
    assert "Server: Authorization successful!" in messages(caplog)


@pytest.mark.unit
def test_demo_aborts_when_throttled(caplog):
    caplog.set_level(logging.INFO)
    lines = iter(["ghost@example.com", "x"] * 3)
    assert main(lambda prompt: next(lines)) == 2
    assert "ThrottlingMiddleware: Request limit exceeded!" in messages(caplog)


@pytest.mark.unit
def test_demo_stops_on_closed_input():
    def closed(prompt):
        raise EOFError

    assert main(closed) == 1
