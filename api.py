#api.py
from typing import Optional, List, Dict, Any
from urllib.parse import quote

import requests

from config import (
    SL_URL,
    COMPANY_DB,
    SL_USER,
    SL_PASS,
    ROUTE_ID_OVERRIDE,
    PRE_LOGIN_B1SESSION,
    HTTP_TIMEOUT,
    EXTRA_FILE_FIELDS,
    SESSION,
)
from exceptions import ServiceLayerError, AuthError, NotFoundError
from models import SapSession, Order, OrderLine, Component
from logger import get_logger

log = get_logger("api")


def mask(value: Optional[str]) -> Optional[str]:
    if not value:
        return value
    return "****" if len(value) <= 4 else f"***{value[-3:]}"


def truncate(text: Optional[str], max_len: int = 800) -> str:
    if not text:
        return ""
    return text if len(text) <= max_len else text[:max_len] + "..."


def decode_json(resp: requests.Response) -> Optional[Dict[str, Any]]:
    try:
        data = resp.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _str(d: Dict[str, Any], key: str) -> str:
    v = d.get(key)
    return "" if v is None else str(v).strip()


def _int(d: Dict[str, Any], key: str) -> int:
    try:
        return int(d.get(key) or 0)
    except (TypeError, ValueError):
        return 0


def _num(d: Dict[str, Any], key: str) -> float:
    try:
        return float(d.get(key) or 0)
    except (TypeError, ValueError):
        return 0.0


def send_request(method: str, path: str, cookie: Optional[str] = None, **kwargs) -> requests.Response:
    url = f"{SL_URL}/{path}"
    headers = {"Accept": "application/json"}
    if cookie:
        headers["Cookie"] = cookie

    try:
        resp = SESSION.request(method, url, headers=headers, timeout=HTTP_TIMEOUT, **kwargs)
    except requests.RequestException as e:
        raise ServiceLayerError(f"{method} {path} failed: {e}") from e

    log.debug(f"{method} {path} -> {resp.status_code}")
    return resp


def _raise_for_status(resp: requests.Response, what: str) -> None:
    if resp.status_code == 401:
        raise AuthError(f"{what}: Service Layer session not authorized (401)",
                        status_code=401, body=truncate(resp.text))
    if resp.status_code == 404:
        raise NotFoundError(f"{what}: not found (404)", status_code=404, body=truncate(resp.text))
    if not resp.ok:
        raise ServiceLayerError(f"{what}: HTTP {resp.status_code}",
                                status_code=resp.status_code, body=truncate(resp.text))


# ---------------- Session ----------------
def open_session() -> SapSession:
    body = {"CompanyDB": COMPANY_DB, "UserName": SL_USER, "Password": SL_PASS}

    # some load-balanced installs want B1SESSION/ROUTEID even on Login
    pre = []
    if PRE_LOGIN_B1SESSION:
        pre.append(f"B1SESSION={PRE_LOGIN_B1SESSION}")
    if ROUTE_ID_OVERRIDE:
        pre.append(f"ROUTEID={ROUTE_ID_OVERRIDE}")

    log.info(f"Login to Service Layer {SL_URL} (CompanyDB={COMPANY_DB}, user={SL_USER})")
    resp = send_request("POST", "Login", cookie="; ".join(pre) or None, json=body)

    if resp.status_code == 401:
        log.error(f"Service Layer login rejected: {truncate(resp.text)}")
        raise AuthError("Invalid Service Layer credentials (401)", status_code=401, body=truncate(resp.text))
    if not resp.ok:
        log.error(f"Service Layer login failed: status={resp.status_code} body={truncate(resp.text)}")
        raise ServiceLayerError(f"Service Layer login failed (HTTP {resp.status_code})",
                                status_code=resp.status_code, body=truncate(resp.text))

    session_id = resp.cookies.get("B1SESSION")
    route_id = resp.cookies.get("ROUTEID")
    if not session_id:
        # older releases only return it in the body
        session_id = _str(decode_json(resp) or {}, "SessionId")

    # the explicit SapSession is the only carrier of the session
    SESSION.cookies.clear()

    if not session_id:
        raise AuthError("Service Layer did not return a SessionId", status_code=resp.status_code)

    route_id = route_id or ROUTE_ID_OVERRIDE
    log.info(f"Service Layer login ok. SessionId={mask(session_id)} RouteId={route_id}")
    return SapSession(session_id=session_id, route_id=route_id)


def close_session(session: SapSession) -> None:
    """Best effort: never raises."""
    try:
        resp = send_request("POST", "Logout", cookie=session.cookie())
        if not resp.ok:
            log.warning(f"Service Layer logout returned {resp.status_code}")
        else:
            log.info(f"Service Layer logout ok (SessionId={mask(session.session_id)})")
    except Exception as e:
        log.warning(f"Service Layer logout failed: {e}")


# ---------------- Orders ----------------
def parse_order_line(line: Dict[str, Any]) -> OrderLine:
    extras = []
    for f in EXTRA_FILE_FIELDS:
        v = _str(line, f)
        if v:
            extras.append(v)

    return OrderLine(
        item_code=_str(line, "ItemCode"),
        quantity=_num(line, "Quantity"),
        line_num=_int(line, "LineNum"),
        item_name=_str(line, "ItemDescription"),
        warehouse_code=_str(line, "WarehouseCode") or None,
        extra_file_names=tuple(extras),
    )


def parse_order(doc_entry: int, data: Dict[str, Any]) -> Order:
    lines: List[OrderLine] = []
    for raw in data.get("DocumentLines") or []:
        if not isinstance(raw, dict):
            continue
        line = parse_order_line(raw)
        if not line.item_code:
            log.warning(f"Order {doc_entry}: line {line.line_num} has no ItemCode, skipped")
            continue
        lines.append(line)

    return Order(
        doc_entry=_int(data, "DocEntry") or doc_entry,
        number=_int(data, "DocNum"),
        customer_code=_str(data, "CardCode"),
        customer_name=_str(data, "CardName"),
        project=_str(data, "Project") or None,
        lines=tuple(lines),
    )


def fetch_order(doc_entry: int, session: SapSession) -> Order:
    resp = send_request("GET", f"Orders({int(doc_entry)})", cookie=session.cookie())
    _raise_for_status(resp, f"Order DocEntry={doc_entry}")

    data = decode_json(resp)
    if data is None:
        log.error(f"Unparsable order body for DocEntry={doc_entry}: {truncate(resp.text)}")
        raise ServiceLayerError(f"Order DocEntry={doc_entry}: response is not a JSON object",
                                status_code=resp.status_code, body=truncate(resp.text))

    order = parse_order(doc_entry, data)
    log.info(
        f"Order fetched: DocNum={order.number}, customer={order.customer_code} "
        f"{order.customer_name}, lines={len(order.lines)}"
    )
    return order


# ---------------- Bill of materials ----------------
def product_tree_path(item_code: str) -> str:
    # OData string literal: quotes doubled, then URL-escaped
    return "ProductTrees('{}')".format(quote(item_code.replace("'", "''"), safe=""))


def parse_components(data: Dict[str, Any]) -> List[Component]:
    out = []
    for comp in data.get("ProductTreeLines") or []:
        if not isinstance(comp, dict):
            continue
        code = _str(comp, "ItemCode")
        if not code:
            continue
        out.append(Component(
            item_code=code,
            name=_str(comp, "ItemName"),
            quantity=_num(comp, "Quantity"),
            line_num=_int(comp, "LineNum"),
        ))
    return out


def fetch_components(item_code: str, session: SapSession) -> List[Component]:
    """BOM lines of item_code; empty list when the item has no product tree."""
    resp = send_request("GET", product_tree_path(item_code), cookie=session.cookie())
    if resp.status_code == 404:
        return []
    _raise_for_status(resp, f"Product tree {item_code}")

    data = decode_json(resp)
    if data is None:
        log.error(f"Unparsable BOM for {item_code}, treated as no BOM. Body: {truncate(resp.text)}")
        return []

    components = parse_components(data)
    log.debug(f"BOM {item_code}: {len(components)} components")
    return components
