from __future__ import annotations

from typing import Any

import anyio

from divebook.settings import settings


class StripeClient:
    """Thin wrapper around the Stripe SDK.

    The SDK is synchronous; every outbound call is pushed to a worker thread so
    request handlers never block the event loop. Webhook verification is local
    HMAC work and stays synchronous.
    """

    def __init__(
        self,
        *,
        secret_key: str | None,
        webhook_secret: str | None,
        stripe_sdk: Any | None = None,
    ) -> None:
        if stripe_sdk is None:
            import stripe as stripe_sdk  # type: ignore

        self.stripe = stripe_sdk
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret

    def _configure(self) -> None:
        if not self.secret_key:
            raise ValueError("Stripe secret key not configured")
        self.stripe.api_key = self.secret_key

    async def create_checkout_session(
        self,
        *,
        amount_cents: int,
        currency: str,
        success_url: str,
        cancel_url: str,
        product_name: str,
        metadata: dict[str, str],
        destination_account: str | None = None,
        application_fee_cents: int | None = None,
    ) -> Any:
        self._configure()
        payment_intent_data: dict[str, Any] = {"metadata": dict(metadata)}
        if destination_account:
            payment_intent_data["application_fee_amount"] = application_fee_cents or 0
            payment_intent_data["transfer_data"] = {"destination": destination_account}

        payload = {
            "mode": "payment",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "line_items": [
                {
                    "price_data": {
                        "currency": currency,
                        "product_data": {"name": product_name},
                        "unit_amount": amount_cents,
                    },
                    "quantity": 1,
                }
            ],
            "metadata": dict(metadata),
            "payment_intent_data": payment_intent_data,
        }

        def _create() -> Any:
            return self.stripe.checkout.Session.create(**payload)

        return await anyio.to_thread.run_sync(_create)

    async def create_transfer(
        self,
        *,
        amount_cents: int,
        currency: str,
        destination_account: str,
        description: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> Any:
        self._configure()
        payload: dict[str, Any] = {
            "amount": amount_cents,
            "currency": currency,
            "destination": destination_account,
        }
        if description:
            payload["description"] = description
        if metadata:
            payload["metadata"] = metadata

        def _create() -> Any:
            return self.stripe.Transfer.create(**payload)

        return await anyio.to_thread.run_sync(_create)

    async def create_connected_account(self, *, metadata: dict[str, str] | None = None) -> Any:
        self._configure()
        payload: dict[str, Any] = {"type": "express"}
        if metadata:
            payload["metadata"] = metadata

        def _create() -> Any:
            return self.stripe.Account.create(**payload)

        return await anyio.to_thread.run_sync(_create)

    async def create_onboarding_link(self, *, account_id: str, refresh_url: str, return_url: str) -> Any:
        self._configure()

        def _create() -> Any:
            return self.stripe.AccountLink.create(
                account=account_id,
                refresh_url=refresh_url,
                return_url=return_url,
                type="account_onboarding",
            )

        return await anyio.to_thread.run_sync(_create)

    def verify_webhook(self, payload: bytes, signature: str | None) -> Any:
        if not self.webhook_secret:
            raise ValueError("Stripe webhook secret not configured")
        if not signature:
            raise ValueError("Missing Stripe signature header")
        return self.stripe.Webhook.construct_event(
            payload=payload, sig_header=signature, secret=self.webhook_secret
        )


def resolve_client(app_state: Any) -> StripeClient:
    client = getattr(app_state, "stripe_client", None)
    if client is None:
        client = StripeClient(
            secret_key=settings.stripe_secret_key,
            webhook_secret=settings.stripe_webhook_secret,
        )
        app_state.stripe_client = client
    return client


def safe_get(source: object, key: str, default: Any | None = None) -> Any:
    if source is None:
        return default
    if isinstance(source, dict):
        return source.get(key, default)
    return getattr(source, key, default)


def expandable_id(value: object) -> str | None:
    """Return the id of a Stripe field that may be an id string or an expanded object."""
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    identifier = safe_get(value, "id")
    return str(identifier) if identifier else None
