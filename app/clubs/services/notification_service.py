"""
Notification Service - membership notifications for club administrators and members.

The membership engine only knows the ``Notifier`` protocol; ``EmailNotifier``
is the production implementation and is attached to ``app.state`` at startup.
Sends are best-effort: ``notify_safely`` bounds them in time and logs failures.
"""
import asyncio
import logging
from typing import Awaitable, Optional, Protocol

from app.core.config import NOTIFICATION_TIMEOUT
from app.core.mailer import send_email
from app.clubs.models.clubs import Club
from app.clubs.models.memberships import Membership
from app.clubs.models.users import User

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def notify_new_request(
        self, admin: User, requester: User, club: Club, membership: Membership
    ) -> None: ...

    async def notify_approved(
        self, member: User, club: Club, membership: Membership
    ) -> None: ...

    async def notify_rejected(self, member: User, club: Club) -> None: ...


class EmailNotifier:
    """Sends notifications through the mail relay"""

    async def notify_new_request(
        self, admin: User, requester: User, club: Club, membership: Membership
    ) -> None:
        config = _get_notification_config(
            "new_request", requester.name, club.name, membership.role.value
        )
        await self._send(admin.email, config)

    async def notify_approved(
        self, member: User, club: Club, membership: Membership
    ) -> None:
        config = _get_notification_config(
            "approved", member.name, club.name, membership.role.value
        )
        await self._send(member.email, config)

    async def notify_rejected(self, member: User, club: Club) -> None:
        config = _get_notification_config("rejected", member.name, club.name)
        await self._send(member.email, config)

    async def _send(self, to: str, config: dict) -> None:
        sent = await send_email(to, config["subject"], config["html"])
        if not sent:
            logger.warning(f"Notification '{config['subject']}' to {to} was not delivered")


async def notify_safely(
    notification: Awaitable[None],
    description: str,
    timeout: Optional[float] = None,
) -> None:
    """
    Await a notification without letting it fail the caller.

    Args:
        notification: Pending notifier call
        description: Human readable label used in the logs
        timeout: Upper bound in seconds (NOTIFICATION_TIMEOUT by default)
    """
    try:
        await asyncio.wait_for(notification, timeout=timeout or NOTIFICATION_TIMEOUT)
        logger.debug(f"Notification sent: {description}")
    except asyncio.TimeoutError:
        logger.warning(f"Notification timed out: {description}")
    except Exception as e:
        logger.error(f"Failed to send notification ({description}): {e}", exc_info=True)


def _get_notification_config(
    notification_type: str,
    user_name: str,
    club_name: str,
    role: Optional[str] = None,
) -> dict:
    configs = {
        "new_request": {
            "subject": f"Nova solicitação de entrada - {club_name}",
            "html": (
                f"<p><b>{user_name}</b> solicitou entrada no clube "
                f"<b>{club_name}</b> como {role}.</p>"
                f"<p>Acesse o painel do clube para aprovar ou rejeitar.</p>"
            ),
        },
        "approved": {
            "subject": f"Solicitação aprovada - {club_name}",
            "html": (
                f"<p>Olá {user_name},</p>"
                f"<p>Sua entrada no clube <b>{club_name}</b> foi aprovada "
                f"com a função {role}.</p>"
            ),
        },
        "rejected": {
            "subject": f"Solicitação não aprovada - {club_name}",
            "html": (
                f"<p>Olá {user_name},</p>"
                f"<p>Sua solicitação de entrada no clube <b>{club_name}</b> "
                f"não foi aprovada. Você pode enviar uma nova solicitação.</p>"
            ),
        },
    }
    return configs[notification_type]
