"""
Razorpay Checkout in the system browser.

The desktop client cannot embed the gateway's checkout, so ``BrowserCheckout``
serves a one-shot page from a loopback HTTP server, opens it with
``webbrowser`` and blocks until the page reports success or dismissal (or
the configured timeout passes). A failed attempt is remembered but does not
end the checkout: the gateway lets the member retry in the same window.
"""
import html
import json
import secrets
import threading
import webbrowser
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from string import Template
from typing import Any, Callable, Optional, Tuple

from pydantic import ValidationError as SchemaError

from config.constants import CheckoutDefaults
from managers.payment_manager import CheckoutUI
from models.payment import CheckoutOptions, CheckoutResponse
from utils.error_handlers import CheckoutCancelledError, CheckoutError
from utils.logging_config import get_logger

logger = get_logger(__name__)

_PAGE = Template("""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>$title</title>
<script src="$script_url"></script>
</head>
<body style="font-family: sans-serif; text-align: center; padding-top: 80px;">
<p id="status">Opening secure payment window...</p>
<script>
var TOKEN = "$token";
function report(path, body, message) {
  fetch(path, {
    method: "POST",
    headers: {"Content-Type": "application/json", "X-Checkout-Token": TOKEN},
    body: JSON.stringify(body || {})
  }).then(function () {
    document.getElementById("status").innerText = message;
  });
}
var DONE = "You can close this window and return to the application.";
var options = $options;
options.handler = function (response) {
  report("/callback", {
    razorpay_payment_id: response.razorpay_payment_id,
    razorpay_order_id: response.razorpay_order_id,
    razorpay_signature: response.razorpay_signature
  }, DONE);
};
options.modal = {ondismiss: function () { report("/cancel", {}, DONE); }};
var rzp = new Razorpay(options);
// The gateway keeps its window open after a failed attempt so the member can retry
rzp.on("payment.failed", function (response) {
  var err = response.error || {};
  report("/failed", {code: err.code, description: err.description, reason: err.reason},
         "Payment failed. You can try again in the payment window.");
});
rzp.open();
</script>
</body>
</html>
""")

_ROUTES = {
    "/callback": "success",
    "/cancel": "cancelled",
    "/failed": "failed",
}


def render_checkout_page(options: CheckoutOptions, token: str) -> str:
    options_json = json.dumps(options.model_dump(exclude_none=True))
    return _PAGE.substitute(
        title=html.escape(options.name),
        script_url=CheckoutDefaults.CHECKOUT_SCRIPT_URL,
        token=token,
        # Keep the JSON from closing the <script> element
        options=options_json.replace("</", "<\\/"),
    )


class _CheckoutServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, page: str, token: str):
        super().__init__(("127.0.0.1", 0), _CheckoutRequestHandler)
        self.page = page
        self.token = token
        self.done = threading.Event()
        self.outcome: Optional[Tuple[str, Any]] = None
        # Latest failed attempt; the member may still retry and pay
        self.last_failure: Optional[Any] = None
        self._outcome_lock = threading.Lock()

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.server_address[1]}/"

    def complete(self, outcome: str, payload: Any) -> None:
        with self._outcome_lock:
            if self.outcome is not None:
                return
            if outcome == "failed":
                self.last_failure = payload
                return
            # First terminal report (success or dismissal) wins
            self.outcome = (outcome, payload)
            self.done.set()


class _CheckoutRequestHandler(BaseHTTPRequestHandler):
    server: _CheckoutServer

    def do_GET(self):
        if self.path.split("?", 1)[0] != "/":
            self.send_error(404)
            return
        body = self.server.page.encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Cache-Control", "no-store")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_POST(self):
        outcome = _ROUTES.get(self.path)
        if outcome is None:
            self.send_error(404)
            return
        if not secrets.compare_digest(self.headers.get("X-Checkout-Token", ""), self.server.token):
            self.send_error(403)
            return
        length = int(self.headers.get("Content-Length") or 0)
        try:
            payload = json.loads(self.rfile.read(length) or b"{}")
        except ValueError:
            self.send_error(400)
            return
        self.server.complete(outcome, payload)
        self.send_response(204)
        self.end_headers()

    def log_message(self, format, *args):
        logger.debug("[Checkout] " + format % args)


class BrowserCheckout(CheckoutUI):
    def __init__(self, timeout: float, opener: Callable[[str], bool] = webbrowser.open):
        self.timeout = timeout
        self._open = opener

    def open(self, options: CheckoutOptions) -> CheckoutResponse:
        token = secrets.token_urlsafe(24)
        server = _CheckoutServer(render_checkout_page(options, token), token)
        thread = threading.Thread(target=server.serve_forever, name="checkout-server", daemon=True)
        thread.start()
        try:
            logger.info(f"[Checkout] Opening checkout for order {options.order_id}")
            if not self._open(server.url):
                raise CheckoutError(message="Could not open the payment page in your browser")
            if not server.done.wait(self.timeout):
                raise CheckoutError(
                    message="Payment timed out",
                    recovery_hint="If money was deducted, contact the library before paying again.",
                )
            outcome, payload = server.outcome
        finally:
            server.shutdown()
            server.server_close()

        if outcome == "cancelled":
            failure = server.last_failure
            if failure is not None:
                description = failure.get("description") if isinstance(failure, dict) else None
                logger.warning(f"[Checkout] Checkout closed after a failed attempt for order {options.order_id}")
                raise CheckoutError(message=description or "Payment failed")
            logger.info(f"[Checkout] Checkout dismissed for order {options.order_id}")
            raise CheckoutCancelledError()

        try:
            return CheckoutResponse.model_validate(payload)
        except SchemaError as e:
            raise CheckoutError(message="Invalid response from payment gateway", original_error=e) from e
