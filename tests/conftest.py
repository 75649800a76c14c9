"""
Pytest Configuration and Shared Fixtures

A scripted HTTP session that returns real ``requests.Response`` objects,
temporary encrypted credential storage and a fully wired AppContext.
"""

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import requests

from app.context import AppContext
from caller.rest import ApiClient
from config import Settings
from managers.payment_manager import CheckoutUI
from models.payment import CheckoutOptions, CheckoutResponse
from utils.secrets_manager import SecretsManager

MEMBER = {
    "id": "u-member-1",
    "email": "member@example.com",
    "name": "Asha Rao",
    "role": "member",
    "phone": "9876543210",
}

ADMIN = {
    "id": "u-admin-1",
    "email": "admin@example.com",
    "name": "Library Admin",
    "role": "admin",
}

PAYMENT_CONFIG = {
    "razorpay_key_id": "rzp_test_key",
    "currency": "INR",
    "theme_color": "#4D2C91",
    "business_name": "The Learning Corner Library",
}


def make_response(status: int = 200, json_body: Any = None, content: Optional[bytes] = None,
                  content_type: str = "application/json") -> requests.Response:
    """Build a real requests.Response"""
    response = requests.Response()
    response.status_code = status
    if content is None:
        content = b"" if json_body is None else json.dumps(json_body).encode("utf-8")
    response._content = content
    response.headers["Content-Type"] = content_type
    response.encoding = "utf-8"
    return response


@dataclass
class RecordedCall:
    method: str
    path: str
    headers: Dict[str, str]
    json: Any
    timeout: Any


@dataclass
class FakeHttpSession:
    """
    Stand-in for requests.Session.

    Each (method, path) has a queue of responses consumed in order; once the
    queue is empty the last consumed response repeats.
    A queued item may be a Response, an exception to raise, or a callable
    taking the RecordedCall and returning a Response.
    """
    routes: Dict[Tuple[str, str], List[Any]] = field(default_factory=dict)
    calls: List[RecordedCall] = field(default_factory=list)
    last: Dict[Tuple[str, str], Any] = field(default_factory=dict)

    def add(self, method: str, path: str, *responses: Any) -> "FakeHttpSession":
        self.routes.setdefault((method, path), []).extend(responses)
        return self

    def reply(self, method: str, path: str, status: int = 200, json_body: Any = None) -> "FakeHttpSession":
        return self.add(method, path, make_response(status, json_body))

    def request(self, method, url, headers=None, json=None, timeout=None):
        path = urlparse(url).path
        call = RecordedCall(method, path, dict(headers or {}), json, timeout)
        self.calls.append(call)

        key = (method, path)
        queue = self.routes.get(key)
        if queue:
            self.last[key] = queue.pop(0)
        item = self.last.get(key)
        if item is None:
            response = make_response(404, {"detail": "Not Found"})
        else:
            if isinstance(item, Exception):
                raise item
            response = item(call) if callable(item) else item
        response.url = url
        return response

    def calls_to(self, method: str, path: str) -> List[RecordedCall]:
        return [c for c in self.calls if c.method == method and c.path == path]

    def count(self, method: str, path: str) -> int:
        return len(self.calls_to(method, path))


class FakeCheckout(CheckoutUI):
    """Records the options it was opened with and returns/raises ``outcome``."""

    def __init__(self):
        self.opened: List[CheckoutOptions] = []
        self.outcome: Any = None

    def open(self, options: CheckoutOptions) -> CheckoutResponse:
        self.opened.append(options)
        outcome = self.outcome
        if callable(outcome) and not isinstance(outcome, type):
            outcome = outcome(options)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            return CheckoutResponse(
                razorpay_payment_id="pay_test_123",
                razorpay_order_id=options.order_id,
                razorpay_signature="sig_test_abc",
            )
        return outcome


@pytest.fixture
def settings(tmp_path):
    return Settings(
        api_base_url="http://localhost:8001",
        environment="development",
        get_retries=0,
        secrets_dir=tmp_path / "secrets",
        receipt_dir=tmp_path / "receipts",
        log_dir=tmp_path / "logs",
        use_keyring=False,
        overdue_fail_closed=False,
    )


@pytest.fixture
def fake_http():
    return FakeHttpSession()


@pytest.fixture
def secrets(tmp_path, monkeypatch):
    """Encrypted-file credential store in a temp dir (keyring disabled)"""
    monkeypatch.setenv("TLC_SECRETS_ENCRYPTION_KEY", "test-encryption-key-0123456789abcdef")
    return SecretsManager(storage_dir=tmp_path / "secrets", use_keyring=False)


@pytest.fixture
def api(settings, fake_http):
    return ApiClient(settings, session=fake_http)


@pytest.fixture
def fake_checkout():
    return FakeCheckout()


@pytest.fixture
def context(settings, fake_http, secrets, fake_checkout):
    return AppContext.build(settings, checkout=fake_checkout, http_session=fake_http, secrets=secrets)


def sign_in(context: AppContext, fake_http: FakeHttpSession, user: dict, token: str):
    fake_http.reply("POST", "/api/auth/login", 200, {"session_token": token, "user": user})
    return context.session.login(user["email"], "validpass")


def overdue_summary(count: int = 0, total: str = "0", restricted: bool = False, member_id: str = "M-001") -> dict:
    return {
        "member_id": member_id,
        "has_overdue": count > 0,
        "overdue_count": count,
        "total_overdue_amount": total,
        "oldest_overdue_days": 12 if count else 0,
        "restricted_access": restricted,
    }


@pytest.fixture
def member_context(context, fake_http):
    """Signed-in member with a clear overdue summary loaded"""
    sign_in(context, fake_http, MEMBER, "tok-member")
    fake_http.reply("GET", "/api/overdue/member/summary", 200, overdue_summary())
    context.overdue.refresh()
    return context


@pytest.fixture
def restricted_member_context(context, fake_http):
    """Signed-in member with 2 overdues totalling ₹750 and restricted access"""
    sign_in(context, fake_http, MEMBER, "tok-member")
    fake_http.reply("GET", "/api/overdue/member/summary", 200, overdue_summary(2, "750.00", True))
    context.overdue.refresh()
    return context


@pytest.fixture
def payment_routes(fake_http) -> Callable[..., None]:
    """Register config/create-order/verify/profile responses for a successful run"""
    def register(amount: Any = 100, verify: Any = None, order: Any = None, config: Any = None):
        fake_http.add("GET", "/api/payment/config", config if config is not None else make_response(200, PAYMENT_CONFIG))
        fake_http.reply("GET", "/api/contributions/members/my-profile", 200, {"member_id": "M-001"})
        fake_http.add("POST", "/api/payment/create-order", order if order is not None else make_response(200, {
            "order_id": "order_test_1",
            "amount": amount,
            "currency": "INR",
            "razorpay_key_id": "rzp_test_key",
        }))
        fake_http.add("POST", "/api/payment/verify", verify if verify is not None else make_response(200, {
            "success": True,
            "message": "Payment verified",
            "data": {"receipt_number": "TLC-RCPT-0001"},
        }))
    return register
