"""
Notification Service - referral lifecycle emails sent through SendGrid
"""

from typing import Optional

import httpx
import structlog

from refrr.core.config import EmailSettings, settings
from refrr.models.campaign import CampaignInDB
from refrr.models.referral import ReferralInDB

logger = structlog.get_logger()


class EmailNotifier:
    """Sends referral emails.

    Delivery is best-effort: every failure is logged and reported as False,
    nothing is raised back into the referral flow.
    """

    def __init__(self, config: EmailSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.transport = transport

        if not self.config.enabled:
            logger.info("Email notifications disabled")

    async def send(self, to_email: str, subject: str, text_content: str, html_content: Optional[str] = None) -> bool:
        """Send one email via the SendGrid v3 API"""
        if not self.config.enabled:
            logger.info("Email not sent", reason="disabled", to=to_email, subject=subject)
            return False

        payload = {
            "personalizations": [{"to": [{"email": to_email}], "subject": subject}],
            "from": {"email": self.config.from_email, "name": self.config.from_name},
            "content": [{"type": "text/plain", "value": text_content}],
        }
        if html_content:
            payload["content"].append({"type": "text/html", "value": html_content})

        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.config.timeout_seconds) as client:
                response = await client.post(self.config.api_url, json=payload, headers=headers)

            if response.status_code in (200, 201, 202):
                logger.info("Email sent", to=to_email, subject=subject)
                return True

            logger.error(
                "Email send failed",
                to=to_email,
                subject=subject,
                status=response.status_code,
                body=response.text[:200],
            )
            return False
        except httpx.HTTPError as e:
            logger.error("Email send error", to=to_email, subject=subject, error=str(e))
            return False
        except Exception:
            # the referral change is already committed; delivery problems stay here
            logger.exception("Unexpected email send failure", to=to_email, subject=subject)
            return False

    async def notify_link_generated(self, referrer_email: str, referral_link: str, campaign: CampaignInDB) -> bool:
        subject = f"Your referral link for {campaign.title}"
        text = (
            f"Share this link to refer a friend to {campaign.title}:\n\n"
            f"{referral_link}\n\n"
            f"Reward: {campaign.reward_description}"
        )
        html = (
            f"<p>Share this link to refer a friend to <strong>{campaign.title}</strong>:</p>"
            f'<p><a href="{referral_link}">{referral_link}</a></p>'
            f"<p>Reward: {campaign.reward_description}</p>"
        )
        return await self.send(referrer_email, subject, text, html)

    async def notify_referral_completed(self, referral: ReferralInDB, campaign: CampaignInDB) -> None:
        """Tell both sides that the referred party redeemed the code"""
        if referral.referrer_email:
            text = (
                f"Good news! {referral.referred_name or referral.referred_email} used your referral "
                f"code {referral.code} for {campaign.title}.\n\nReward: {campaign.reward_description}"
            )
            await self.send(
                referral.referrer_email,
                "Your referral was completed",
                text,
                f"<p>{text}</p>".replace("\n\n", "</p><p>"),
            )
        if referral.referred_email:
            text = (
                f"Thanks for joining through a referral to {campaign.title}.\n\n"
                f"Your reward: {campaign.reward_description}"
            )
            await self.send(
                referral.referred_email,
                f"Welcome to {campaign.title}",
                text,
                f"<p>{text}</p>".replace("\n\n", "</p><p>"),
            )

    async def notify_referral_approved(self, referral: ReferralInDB, campaign: CampaignInDB) -> None:
        """Business approved or completed the referral"""
        if referral.referrer_email:
            text = (
                f"Your referral {referral.code} for {campaign.title} was approved.\n\n"
                f"Reward: {campaign.reward_description}"
            )
            await self.send(
                referral.referrer_email,
                "Your referral was approved",
                text,
                f"<p>{text}</p>".replace("\n\n", "</p><p>"),
            )
        if referral.referred_email:
            text = f"Your referral to {campaign.title} was approved.\n\nYour reward: {campaign.reward_description}"
            await self.send(
                referral.referred_email,
                f"Your {campaign.title} reward",
                text,
                f"<p>{text}</p>".replace("\n\n", "</p><p>"),
            )

    async def notify_referral_closed(self, referral: ReferralInDB, campaign: CampaignInDB) -> None:
        """Rejected or expired; only the referrer hears about it"""
        if not referral.referrer_email:
            logger.info("No referrer email, skipping notification", referral_id=str(referral.id))
            return
        outcome = referral.status.value
        text = f"Your referral {referral.code} for {campaign.title} was {outcome}."
        await self.send(referral.referrer_email, f"Your referral was {outcome}", text, f"<p>{text}</p>")


notifier = EmailNotifier(settings.email)


def get_notifier() -> EmailNotifier:
    """Dependency: the process-wide notifier"""
    return notifier
