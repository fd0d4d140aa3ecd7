"""
Analytics Service - marketing profiles and lifecycle events in Klaviyo
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

KLAVIYO_BASE_URL = "https://a.klaviyo.com/api"

EVENT_SIGNED_UP = "Signed Up"
EVENT_SUBSCRIPTION_CREATED = "Subscription Created"
EVENT_SUBSCRIPTION_CANCELED = "Subscription Canceled"


def build_http_client(api_key: Optional[str], revision: str) -> Optional[httpx.AsyncClient]:
    if not api_key:
        logger.warning("KLAVIYO_API_KEY not set - analytics events will not be sent")
        return None
    return httpx.AsyncClient(
        base_url=KLAVIYO_BASE_URL,
        headers={
            "accept": "application/vnd.api+json",
            "content-type": "application/vnd.api+json",
            "revision": revision,
            "Authorization": f"Klaviyo-API-Key {api_key}",
        },
        timeout=15,
    )


class AnalyticsService:
    """Service class for analytics event emission"""

    def __init__(self, client: Optional[httpx.AsyncClient]):
        self.client = client

    async def create_profile(
        self,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Create a profile and subscribe it to email marketing.

        Returns:
            The created profile document, or None when analytics is disabled

        Raises:
            httpx.HTTPError: on transport or API errors
        """
        if self.client is None:
            logger.debug("Analytics disabled; skipping profile creation")
            return None

        attributes = {"email": email, "first_name": first_name, "last_name": last_name}
        if phone_number:
            attributes["phone_number"] = phone_number

        response = await self.client.post("/profiles", json={"data": {"type": "profile", "attributes": attributes}})
        response.raise_for_status()
        profile = response.json()

        consent = {
            "data": {
                "type": "profile-subscription-bulk-create-job",
                "attributes": {
                    "profiles": {
                        "data": [
                            {
                                "type": "profile",
                                "id": profile["data"]["id"],
                                "attributes": {
                                    "email": email,
                                    "subscriptions": {
                                        "email": {
                                            "marketing": {
                                                "consent": "SUBSCRIBED",
                                                "consented_at": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                                            }
                                        }
                                    },
                                },
                            }
                        ]
                    },
                    "custom_source": "Sign Up Form",
                },
            }
        }
        consent_response = await self.client.post("/profile-subscription-bulk-create-jobs", json=consent)
        consent_response.raise_for_status()
        return profile

    async def track_event(self, event_name: str, email: str, properties: Optional[Dict[str, Any]] = None) -> bool:
        """
        Emit a metric event for the profile identified by email.

        Raises:
            httpx.HTTPError: on transport or API errors
        """
        if self.client is None:
            logger.debug(f"Analytics disabled; dropping event {event_name}")
            return False

        payload = {
            "data": {
                "type": "event",
                "attributes": {
                    "properties": {"action": event_name, **(properties or {})},
                    "metric": {"data": {"type": "metric", "attributes": {"name": event_name}}},
                    "profile": {"data": {"type": "profile", "attributes": {"email": email}}},
                },
            }
        }
        response = await self.client.post("/events", json=payload)
        response.raise_for_status()
        logger.info(f"Analytics event '{event_name}' sent for {email}")
        return True

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()
