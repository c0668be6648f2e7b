"""What a handler hands back to the router."""

from __future__ import annotations

from dataclasses import dataclass

from afritokeni_ussd.domain.enums import Menu, ResponseKind


@dataclass(frozen=True)
class UssdResponse:
    """A prompt to show. CONTINUE keeps the session, END releases it."""

    kind: ResponseKind
    text: str

    @classmethod
    def continue_with(cls, text: str) -> UssdResponse:
        return cls(ResponseKind.CONTINUE, text)

    @classmethod
    def end_with(cls, text: str) -> UssdResponse:
        return cls(ResponseKind.END, text)

    @property
    def ends_session(self) -> bool:
        return self.kind is ResponseKind.END

    def with_notice(self, notice: str) -> UssdResponse:
        return UssdResponse(self.kind, f"{notice}\n{self.text}")

    def with_footer(self, footer: str) -> UssdResponse:
        return UssdResponse(self.kind, f"{self.text}\n{footer}")

    def render(self) -> str:
        """Gateway wire format: ``CON <text>`` or ``END <text>``."""
        return f"{self.kind.value} {self.text}"


@dataclass(frozen=True)
class Redirect:
    """Enter ``menu`` afresh within the same turn, optionally leading with a notice."""

    menu: Menu
    notice: str | None = None


HandlerResult = UssdResponse | Redirect
