"""
Discord webhook notifications for sync results, errors and admin activity.

Notifications are a side channel: ``DiscordNotifier.notify`` never raises, so
callers do not wrap it. ``NullNotifier`` is used when no webhook is configured
and in tests.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Protocol, Sequence

import httpx

logger = logging.getLogger(__name__)

FOOTER = "IGACMUN Admin Portal"


class COLORS:
    error = 0xFF4444
    success = 0x44FF44
    warning = 0xFFAA00
    info = 0x00AAFF
    sync = 0x9B59B6
    certificate = 0x2ECC71


class Channel:
    ERRORS = "errors"
    UPDATES = "updates"


@dataclass
class NotificationEvent:
    title: str
    description: str = ""
    color: int = COLORS.info
    fields: List[Dict[str, object]] = field(default_factory=list)
    footer: str = FOOTER
    channel: str = Channel.UPDATES

    def to_embed(self) -> dict:
        embed = {
            "title": self.title,
            "color": self.color,
            "fields": self.fields,
            "footer": {"text": self.footer},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if self.description:
            embed["description"] = self.description[:4000]
        return embed


class Notifier(Protocol):
    async def notify(self, event: NotificationEvent) -> bool:
        ...


class NullNotifier:
    """Records events instead of sending them"""

    def __init__(self):
        self.sent: List[NotificationEvent] = []

    async def notify(self, event: NotificationEvent) -> bool:
        self.sent.append(event)
        return True


class DiscordNotifier:
    def __init__(
        self,
        webhooks: Mapping[str, Optional[str]],
        username: str = "IGACMUN Certificate Bot",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._webhooks = dict(webhooks)
        self._username = username
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def close(self) -> None:
        await self._client.aclose()

    async def notify(self, event: NotificationEvent) -> bool:
        url = self._webhooks.get(event.channel)
        if not url:
            return False
        try:
            response = await self._client.post(url, json={
                "content": "",
                "embeds": [event.to_embed()],
                "username": self._username,
            })
            if not response.is_success:
                logger.error(f"Discord webhook failed: {response.status_code} {response.text}")
                return False
            return True
        except Exception as e:
            logger.error(f"Discord webhook error: {e}")
            return False


def _field(name: str, value: object, inline: bool = True) -> Dict[str, object]:
    return {"name": name, "value": str(value)[:1024], "inline": inline}


def error_event(title: str, error: str, details: Optional[Mapping[str, str]] = None) -> NotificationEvent:
    return NotificationEvent(
        title=f"❌ {title}",
        description=error,
        color=COLORS.error,
        fields=[_field(name, value) for name, value in (details or {}).items()],
        channel=Channel.ERRORS,
    )


def sync_complete_event(processed: int, errors: int, certificates: Sequence[Mapping[str, str]]) -> NotificationEvent:
    has_errors = errors > 0
    cert_list = "\n".join(
        f"• **{c['participant_name']}** → `{c['certificate_id']}`" for c in certificates[:10]
    )
    fields = [_field("📊 Processed", processed), _field("❌ Errors", errors)]
    if cert_list:
        fields.append(_field("📜 Certificates Created", cert_list, inline=False))
    if len(certificates) > 10:
        fields.append(_field("", f"... and {len(certificates) - 10} more", inline=False))

    return NotificationEvent(
        title=f"{'⚠️' if has_errors else '✅'} Sync from Google Sheets Complete",
        description=f"Processed **{processed}** certificates with **{errors}** errors",
        color=COLORS.warning if has_errors else COLORS.success,
        fields=fields,
    )


def sync_errors_event(errors: Sequence[Mapping[str, object]]) -> NotificationEvent:
    error_list = "\n".join(f"• **{e['participant_name']}**: {e['error']}" for e in errors[:10])
    return NotificationEvent(
        title=f"⚠️ Sync Errors ({len(errors)})",
        description=error_list,
        color=COLORS.error,
        footer=f"... and {len(errors) - 10} more errors" if len(errors) > 10 else FOOTER,
        channel=Channel.ERRORS,
    )


def certificate_created_event(certificate_id: str, participant_name: str, cert_type: str, created_by: str) -> NotificationEvent:
    return NotificationEvent(
        title="🎓 New Certificate Created",
        color=COLORS.certificate,
        fields=[
            _field("Certificate ID", f"`{certificate_id}`"),
            _field("Participant", participant_name),
            _field("Type", cert_type),
            _field("Created By", created_by),
        ],
    )


def event_created_event(event_code: str, event_name: str) -> NotificationEvent:
    return NotificationEvent(
        title="📅 New Event Created",
        color=COLORS.info,
        fields=[_field("Event Code", f"`{event_code}`"), _field("Event Name", event_name)],
    )


def verification_event(certificate_id: str, participant_name: Optional[str], verified: bool) -> NotificationEvent:
    status = "Verified Successfully" if verified else "Verification Failed"
    return NotificationEvent(
        title=f"{'✅' if verified else '❌'} Certificate {status}",
        color=COLORS.success if verified else COLORS.error,
        fields=[
            _field("Certificate ID", f"`{certificate_id}`"),
            _field("Participant", participant_name or "Unknown"),
        ],
        footer="IGACMUN Certificate Portal",
    )


def login_event(email: str, success: bool) -> NotificationEvent:
    if not success:
        return NotificationEvent(
            title="🔐 Failed Login Attempt",
            description=f"Someone tried to login with: **{email}**",
            color=COLORS.error,
            channel=Channel.ERRORS,
        )
    return NotificationEvent(
        title="🔓 Admin Login",
        description=f"**{email}** logged into the admin portal",
        color=COLORS.success,
    )
