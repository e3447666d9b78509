"""
Chain of Responsibility (Behavioral): customer support desk.

Intent:
    Route a customer request along a chain of support handlers; each handler
    either takes care of the request kind it owns or passes it on.

Flow:
    GeneralSupport -> TechnicalSupport -> Complaints -> Escalation

Notes:
    - First match wins; handlers are tried strictly in link order.
    - Escalation accepts anything, so the canonical chain always terminates
      with a handled request. A chain without a catch-all ends with the
      default "cannot be processed" outcome.
    - Every traversal emits exactly one INFO diagnostic.
"""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Union

__all__ = [
    "ChainConfigurationError",
    "RequestType",
    "Request",
    "SupportResult",
    "SupportHandler",
    "KindMatchingHandler",
    "GeneralSupportHandler",
    "TechnicalSupportHandler",
    "ComplaintsHandler",
    "EscalationHandler",
    "build_support_chain",
    "main",
]

logger = logging.getLogger(__name__)

UNPROCESSABLE_MESSAGE = "Request cannot be processed."


class ChainConfigurationError(ValueError):
    """
    Raised when handlers are wired into something other than a finite, acyclic chain.
    """


# ---------- Data Models ----------

class RequestType(str, Enum):
    """Request kinds known to the canonical support desk."""
    GENERAL = "general"
    TECHNICAL = "technical"
    COMPLAINT = "complaint"


@dataclass(frozen=True, slots=True)
class Request:
    """Immutable customer request passed through the handler chain.

    :ivar kind: Logical type of the request (a RequestType or any other string).
    :ivar content: Free text describing what the customer wants.
    """
    kind: Union[RequestType, str]
    content: str


@dataclass(frozen=True, slots=True)
class SupportResult:
    """Outcome of one traversal of the support chain.

    :ivar handled: False only when the request fell off the end of the chain.
    :ivar handler: Name of the handler that took the request, if any.
    :ivar message: The diagnostic line emitted for this outcome.
    """
    handled: bool
    handler: Optional[str]
    message: str


# ---------- Chain Base ----------

class SupportHandler(ABC):
    """Abstract link of the support chain.

    Concrete handlers implement their matching rule in `handle` and hand
    everything else to `_delegate`.

    :param next_handler: Optional next handler in the chain.
    """

    def __init__(self, next_handler: Optional["SupportHandler"] = None) -> None:
        self._next: Optional["SupportHandler"] = None
        if next_handler is not None:
            self.set_next(next_handler)

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def next_handler(self) -> Optional["SupportHandler"]:
        return self._next

    def set_next(self, handler: "SupportHandler") -> "SupportHandler":
        """Set the next handler in a fluent manner and return it.

        :param handler: The next handler to delegate to.
        :return: The same handler to allow fluent chain building.
        :raises ChainConfigurationError: If linking would close a cycle.
        """
        if any(link is self for link in handler.iter_chain()):
            raise ChainConfigurationError(
                f"Linking {self.name} -> {handler.name} would create a cycle"
            )
        self._next = handler
        return handler

    def iter_chain(self) -> Iterator["SupportHandler"]:
        """Yield this handler and every handler after it, in link order."""
        link: Optional[SupportHandler] = self
        while link is not None:
            yield link
            link = link._next

    @abstractmethod
    def handle(self, request: Request) -> SupportResult:
        """Process the request or delegate it to the next handler.

        :param request: The incoming request.
        :return: The result of whichever link decided the outcome.
        """
        raise NotImplementedError

    def _delegate(self, request: Request) -> SupportResult:
        """Delegate handling to the next handler if present.

        With no next handler the chain ends here and the default
        "cannot be processed" outcome fires.

        :param request: The incoming request.
        :return: Next handler's result, or the unhandled result.
        """
        if self._next is not None:
            logger.debug("%s: forwarding %r to %s", self.name, request.kind, self._next.name)
            return self._next.handle(request)
        logger.info(UNPROCESSABLE_MESSAGE)
        return SupportResult(handled=False, handler=None, message=UNPROCESSABLE_MESSAGE)

    def _accept(self, message: str) -> SupportResult:
        logger.info(message)
        return SupportResult(handled=True, handler=self.name, message=message)


class KindMatchingHandler(SupportHandler):
    """Handles exactly one request kind, delegating all others.

    Subclasses set `kind` (the request type they own) and `label` (how the
    kind reads in the diagnostic line).
    """

    kind: str = ""
    label: str = ""

    def handle(self, request: Request) -> SupportResult:
        if request.kind == self.kind:
            return self._accept(f"{self.name}: Handling {self.label}: {request.content}")
        return self._delegate(request)


# ---------- Concrete Handlers ----------

class GeneralSupportHandler(KindMatchingHandler):
    """Answers general questions (product information, opening hours...)."""
    kind = RequestType.GENERAL
    label = "general request"


class TechnicalSupportHandler(KindMatchingHandler):
    """Deals with technical problems."""
    kind = RequestType.TECHNICAL
    label = "technical request"


class ComplaintsHandler(KindMatchingHandler):
    """Takes customer complaints."""
    kind = RequestType.COMPLAINT
    label = "complaint"


class EscalationHandler(SupportHandler):
    """Catch-all: escalates whatever reaches it, regardless of kind."""

    def handle(self, request: Request) -> SupportResult:
        return self._accept(f"Escalating request: {request.content}")


# ---------- Builder ----------

def build_support_chain(*handlers: SupportHandler) -> SupportHandler:
    """Link handlers in the given order and return the head.

    Without arguments the canonical desk is built:
    General -> Technical -> Complaints -> Escalation.

    :param handlers: Handlers to link, head first.
    :return: The head of the handler chain.
    :raises ChainConfigurationError: If the same handler is passed twice.
    """
    links: List[SupportHandler] = list(handlers) or [
        GeneralSupportHandler(),
        TechnicalSupportHandler(),
        ComplaintsHandler(),
        EscalationHandler(),
    ]
    if len({id(link) for link in links}) != len(links):
        raise ChainConfigurationError("A handler can appear only once in a chain")
    head = links[0]
    current = head
    for link in links[1:]:
        current = current.set_next(link)
    return head


# ---------- Demo ----------

def main() -> int:
    """Run three hard-coded requests through the canonical desk."""
    logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stdout)
    desk = build_support_chain()
    requests = [
        Request(RequestType.GENERAL, "Information about the new product"),
        Request(RequestType.TECHNICAL, "Internet connection problem"),
        Request(RequestType.COMPLAINT, "Unsatisfactory service"),
    ]
    for number, request in enumerate(requests, start=1):
        print(f"Processing request {number}:")
        desk.handle(request)
        print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
