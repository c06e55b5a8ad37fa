# notify.py
from __future__ import annotations

import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import TYPE_CHECKING, Optional, Protocol

from .ui.console import Console, get_console

if TYPE_CHECKING:
    from .model import RunResult
    from .settings import Settings


@dataclass(frozen=True)
class Notification:
    recipient: str
    subject: str
    body: str


class Notifier(Protocol):
    def send(self, notification: Notification) -> None:
        ...


def log_link(settings: "Settings", result: "RunResult") -> str:
    """
    Link to the run's log output: the CI server's console page when we
    know BUILD_URL, otherwise the local build log.
    """
    if settings.build_url:
        base = settings.build_url if settings.build_url.endswith("/") else settings.build_url + "/"
        return f"{base}console"
    if result.log_path is not None:
        return result.log_path.resolve().as_uri()
    return "(no log available)"


def build_failure_notification(recipient: str, settings: "Settings", result: "RunResult") -> Notification:
    subject = f"Build Failed: {settings.job_name} #{result.build_number}"

    lines = [
        f"Job: {settings.job_name}",
        f"Build: #{result.build_number}",
        f"Pipeline: {result.pipeline}",
    ]
    failed = result.failed_stage
    if failed is not None:
        lines.append(f"Failed stage: {failed.name}")
        if failed.exit_code is not None:
            lines.append(f"Exit code: {failed.exit_code}")
    lines.append("")
    lines.append(f"Check the log output at: {log_link(settings, result)}")

    return Notification(recipient=recipient, subject=subject, body="\n".join(lines) + "\n")


class EmailNotifier:
    """Send notifications as plain-text email over SMTP."""

    def __init__(
        self,
        host: str,
        port: int = 25,
        *,
        sender: str = "linearci@localhost",
        username: Optional[str] = None,
        password: Optional[str] = None,
        starttls: bool = False,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    def _message(self, notification: Notification) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = notification.recipient
        msg["Subject"] = notification.subject
        msg.set_content(notification.body)
        return msg

    def send(self, notification: Notification) -> None:
        msg = self._message(notification)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.starttls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password or "")
            smtp.send_message(msg)
        get_console().print_info(f"Failure notification sent to {notification.recipient}")


class ConsoleNotifier:
    """Fallback when no SMTP server is configured: print the notification."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console

    def send(self, notification: Notification) -> None:
        console = self.console or get_console()
        console.print_notification(notification.recipient, notification.subject, notification.body)


def notifier_from_settings(settings: "Settings", console: Optional[Console] = None) -> Notifier:
    if settings.smtp_host:
        return EmailNotifier(
            settings.smtp_host,
            settings.smtp_port,
            sender=settings.smtp_from,
            username=settings.smtp_user,
            password=settings.smtp_password,
            starttls=settings.smtp_starttls,
        )
    return ConsoleNotifier(console)
