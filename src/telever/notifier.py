"""Outbound notification boundary.

The matcher only talks to the abstract Notifier; the concrete transport (a
chat bot, the CLI console, a test recorder) is injected.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from rich.console import Console

from .errors import NotifierError
from .models.verification import Attachment, GeoAttachment, ImageAttachment


class Notifier(ABC):
    """Abstract interface for delivering user-visible outcomes."""

    @abstractmethod
    def notify(self, recipient: str, text: str, attachment: Optional[Attachment] = None) -> None:
        """Send text, optionally with an image or a location, to a recipient.

        Raises:
            NotifierError: If the recipient cannot be reached
        """
        pass


class ConsoleNotifier(Notifier):
    """Prints notifications to a Rich console (used by the CLI)."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def notify(self, recipient: str, text: str, attachment: Optional[Attachment] = None) -> None:
        if isinstance(attachment, GeoAttachment):
            self.console.print(
                f"[cyan]→ {recipient}[/cyan] [magenta]location[/magenta] "
                f"{attachment.latitude}, {attachment.longitude}"
            )
        elif isinstance(attachment, ImageAttachment):
            self.console.print(
                f"[cyan]→ {recipient}[/cyan] [magenta]image[/magenta] "
                f"[dim]({len(attachment.image)} bytes)[/dim]"
            )
            if attachment.caption:
                self.console.print(attachment.caption)
        if text:
            self.console.print(f"[cyan]→ {recipient}[/cyan] {text}")


@dataclass
class SentNotification:
    recipient: str
    text: str
    attachment: Optional[Attachment] = None


@dataclass
class RecordingNotifier(Notifier):
    """Deterministic notifier that records every call.

    Recipients listed in ``unreachable`` raise NotifierError, mimicking a
    chat that was never started with the bot.
    """

    sent: list[SentNotification] = field(default_factory=list)
    unreachable: set[str] = field(default_factory=set)

    def notify(self, recipient: str, text: str, attachment: Optional[Attachment] = None) -> None:
        if recipient in self.unreachable:
            raise NotifierError(f"Chat not found: {recipient}", recipient=recipient)
        self.sent.append(SentNotification(recipient=recipient, text=text, attachment=attachment))

    def texts(self, recipient: Optional[str] = None) -> list[str]:
        return [n.text for n in self.sent if recipient is None or n.recipient == recipient]
