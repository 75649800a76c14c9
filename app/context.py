"""
Application context.

One object wiring every component; screens and handlers receive it instead
of reaching for module-level globals.
"""
from dataclasses import dataclass
from typing import Optional

import requests

from caller.rest import ApiClient
from config import Settings
from managers.access_gate import AccessGate
from managers.member_connect_manager import MemberConnectManager
from managers.overdue_manager import OverdueStatusCache
from managers.payment_manager import CheckoutUI, PaymentOrchestrator
from managers.receipt_manager import ReceiptRetriever
from managers.session_manager import SessionStore
from utils.logging_config import get_logger
from utils.payment_client import PaymentClient
from utils.secrets_manager import SecretsManager

logger = get_logger(__name__)


@dataclass
class AppContext:
    settings: Settings
    api: ApiClient
    secrets: SecretsManager
    session: SessionStore
    overdue: OverdueStatusCache
    gate: AccessGate
    payment_client: PaymentClient
    payments: PaymentOrchestrator
    receipts: ReceiptRetriever
    member_connect: MemberConnectManager

    @classmethod
    def build(
        cls,
        settings: Settings,
        checkout: Optional[CheckoutUI] = None,
        http_session: Optional[requests.Session] = None,
        secrets: Optional[SecretsManager] = None,
    ) -> "AppContext":
        """
        Wire the client.

        Args:
            settings: Loaded settings
            checkout: Checkout UI (defaults to the browser checkout)
            http_session: Transport override (tests)
            secrets: Credential store override (tests)
        """
        if checkout is None:
            from ui.checkout import BrowserCheckout
            checkout = BrowserCheckout(timeout=settings.checkout_timeout)

        secrets = secrets or SecretsManager(
            storage_dir=settings.secrets_dir,
            use_keyring=settings.use_keyring,
        )
        api = ApiClient(settings, session=http_session)
        session = SessionStore(api, secrets)

        # Token is read from the session on every request
        api.set_token_provider(lambda: session.token)
        api.on_unauthorized = lambda path: session.invalidate(f"401 from {path}")

        overdue = OverdueStatusCache(api, session)
        gate = AccessGate(session, overdue, fail_closed=settings.overdue_fail_closed)
        payment_client = PaymentClient(api)
        payments = PaymentOrchestrator(payment_client, checkout)
        receipts = ReceiptRetriever(payment_client, settings.receipt_dir, mode=settings.receipt_mode)
        member_connect = MemberConnectManager(api, session, gate, overdue, payments)

        logger.info(f"Client wired for {settings.api_base_url} (credentials: {secrets.backend_name})")
        return cls(
            settings=settings,
            api=api,
            secrets=secrets,
            session=session,
            overdue=overdue,
            gate=gate,
            payment_client=payment_client,
            payments=payments,
            receipts=receipts,
            member_connect=member_connect,
        )
