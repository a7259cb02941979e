# storefront/services/backend_client.py
from typing import Any, List

import requests
from pydantic import TypeAdapter, ValidationError
from requests import RequestException

from storefront.domain.schemas import (
    CoefficientLog,
    LoginRequest,
    LoginResponse,
    MenuItem,
    MenuPage,
    Order,
    OrderCreate,
    OrderSimple,
    OrderStatus,
)
from storefront.repos.session_repo import EMAIL_KEY
from storefront.utils.settings import BACKEND_API_URL, HTTP_TIMEOUT
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class BackendError(Exception):
    """Bazowy blad komunikacji z backendem cenowym."""

    code = "backend_error"
    default_message = "Error communicating with the pricing backend"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        errors: list | None = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        self.status_code = status_code
        self.errors = errors or []


class BackendUnavailable(BackendError):
    code = "backend_unavailable"
    default_message = "Network error: the pricing backend is unreachable"


class AuthenticationRequired(BackendError):
    code = "authentication_required"
    default_message = "Authentication required: Please log in to continue"


class SessionExpired(AuthenticationRequired):
    code = "session_expired"
    default_message = "Session expired: Please log in again"


class ValidationFailed(BackendError):
    code = "validation_failed"
    default_message = "Bad request: The server could not process your request"


class NotFound(BackendError):
    code = "not_found"
    default_message = "Not found: The requested resource does not exist"


class ServerError(BackendError):
    code = "server_error"
    default_message = "Server error: Something went wrong on the server"


class MalformedResponse(BackendError):
    code = "malformed_response"
    default_message = "Unexpected response payload from the pricing backend"


_STATUS_ERRORS = {
    400: ValidationFailed,
    401: AuthenticationRequired,
    404: NotFound,
    422: ValidationFailed,
}


def _detail(resp: requests.Response) -> tuple[str | None, list]:
    try:
        body = resp.json()
    except ValueError:
        return None, []

    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, list):
        #422 z FastAPI: [{"loc": [...], "msg": "...", "type": "..."}]
        messages = []
        for err in detail:
            if not isinstance(err, dict):
                messages.append(str(err))
                continue
            loc = ".".join(str(p) for p in err.get("loc", []) if p != "body")
            messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
        return "; ".join(messages) or None, detail
    if detail is not None:
        return str(detail), []
    return None, []


def error_from_response(resp: requests.Response) -> BackendError:
    message, errors = _detail(resp)
    status = resp.status_code

    if status in _STATUS_ERRORS:
        cls = _STATUS_ERRORS[status]
    elif status >= 500:
        cls = ServerError
    else:
        cls = BackendError
        message = message or f"Error {status}: {resp.reason}"

    return cls(message, status_code=status, errors=errors)


_menu_list = TypeAdapter(List[MenuItem])
_history_list = TypeAdapter(List[CoefficientLog])
_order_list = TypeAdapter(List[Order])


def _parse(adapter: TypeAdapter, data: Any):
    try:
        return adapter.validate_python(data)
    except ValidationError as e:
        raise MalformedResponse(f"Unexpected response payload: {e.error_count()} invalid field(s)") from e


class BackendClient:
    """
    Klient HTTP backendu cenowego.
    -tlumaczy kody statusu na typowane bledy
    -przy 401 jedna proba odswiezenia sesji (/auth/refresh) i powtorzenie zapytania
    -ciasteczka z tokenami trzyma requests.Session
    """

    REFRESH_PATH = "/auth/refresh"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        session_repo=None,
        http: requests.Session | None = None,
    ):
        self.base_url = (base_url or BACKEND_API_URL).rstrip("/")
        self.timeout = timeout or HTTP_TIMEOUT
        self.session_repo = session_repo
        self.http = http or requests.Session()

    def _send(self, method: str, path: str, params: dict | None = None, json: Any = None):
        url = f"{self.base_url}{path}"
        logger.info(f"BackendClient {method} {url}")

        try:
            resp = self.http.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except RequestException as e:
            raise BackendUnavailable(f"Network error while calling {url}: {e}") from e

        if resp.status_code >= 400:
            error = error_from_response(resp)
            logger.warning(f"BackendClient {method} {url} -> {resp.status_code}: {error.message}")
            raise error

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise MalformedResponse(f"Response from {url} is not JSON") from e

    def _request(self, method: str, path: str, params: dict | None = None, json: Any = None):
        try:
            return self._send(method, path, params=params, json=json)
        except AuthenticationRequired:
            if path == self.REFRESH_PATH or not self._has_session():
                raise

        logger.info(f"401 dla {path}, odswiezam sesje i powtarzam zapytanie")
        self._refresh_session()
        return self._send(method, path, params=params, json=json)

    def _has_session(self) -> bool:
        if self.session_repo is None:
            return False
        return EMAIL_KEY in self.session_repo.get_markers()

    def _refresh_session(self) -> None:
        try:
            self._send("POST", self.REFRESH_PATH)
        except BackendError as e:
            logger.warning(f"Odswiezenie sesji nieudane: {e}")
            self.forget_session()
            raise SessionExpired(status_code=401) from e

    def forget_session(self) -> None:
        """Czysci ciasteczka i lokalne znaczniki sesji."""
        self.http.cookies.clear()
        if self.session_repo is not None:
            self.session_repo.clear()

    # ---- auth ----

    def login(self, data: LoginRequest) -> LoginResponse:
        payload = self._send("POST", "/auth/login", json=data.model_dump())
        return _parse(TypeAdapter(LoginResponse), payload)

    # ---- menu ----

    def list_menu(self) -> List[MenuItem]:
        payload = self._request("GET", "/menu")
        #raz gola lista, raz strona {items, total, page, ...}
        if isinstance(payload, dict):
            return _parse(TypeAdapter(MenuPage), payload).items
        return _parse(_menu_list, payload or [])

    def get_menu_item(self, item_id: str) -> MenuItem:
        payload = self._request("GET", "/menu/item", params={"item_id": item_id})
        return _parse(TypeAdapter(MenuItem), payload)

    # ---- coefficient ----

    def get_coefficient_history(self, item_id: str, public: bool = True) -> List[CoefficientLog]:
        path = "/coefficient/public/history" if public else "/coefficient/history"
        payload = self._request("GET", path, params={"item_id": item_id})
        return _parse(_history_list, payload or [])

    # ---- orders ----

    def create_order(self, data: OrderCreate) -> OrderSimple:
        payload = self._request("POST", "/order", json=data.model_dump(mode="json"))
        return _parse(TypeAdapter(OrderSimple), payload)

    def get_order(self, order_id: str) -> Order:
        payload = self._request("GET", "/order", params={"order_id": order_id})
        return _parse(TypeAdapter(Order), payload)

    def list_orders(self) -> List[Order]:
        payload = self._request("GET", "/orders")
        if isinstance(payload, dict):
            payload = payload.get("items") or []
        return _parse(_order_list, payload or [])

    def update_order_status(self, order_id: str, status: OrderStatus) -> Order:
        payload = self._request(
            "PATCH",
            "/order/status",
            params={"order_id": order_id},
            json={"status": status.value},
        )
        return _parse(TypeAdapter(Order), payload)
