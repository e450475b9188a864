from __future__ import annotations

import base64
import json
import os
import re
import time
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qs

from twilio.twiml.messaging_response import MessagingResponse

import list_store
from command_parser import ARGUMENT
from command_parser import evaluate
from command_parser import tokenize
from list_ops import SYSTEM_ERROR
from list_ops import USER_ERROR

APPROVED_USER_PHONE_NUMBERS = os.environ.get("MARCUS_APPROVED_USER_PHONE_NUMBERS", "")
SCHEMA_VERSION = os.environ.get("SCHEMA_VERSION", "2026-10-19")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _approved_numbers() -> set[str]:
    return {n for n in re.split(r"[\s,]+", APPROVED_USER_PHONE_NUMBERS) if n}


def _mask_number(number: str) -> str:
    if len(number) <= 4:
        return "*" * len(number)
    return "*" * (len(number) - 4) + number[-4:]


def _request_id(event: dict[str, Any]) -> str:
    rc = event.get("requestContext") or {}
    if isinstance(rc, dict):
        return str(rc.get("requestId") or "").strip()
    return ""


def _parse_form_body(event: dict[str, Any]) -> dict[str, str]:
    # Twilio posts application/x-www-form-urlencoded, e.g. From=%2B15550001111&Body=lp%2Cfoo
    raw = event.get("body")
    if not isinstance(raw, str):
        return {}
    if event.get("isBase64Encoded"):
        try:
            raw = base64.b64decode(raw).decode("utf-8")
        except Exception:
            return {}
    parsed = parse_qs(raw, keep_blank_values=True)
    return {key: values[0] for key, values in parsed.items() if values}


def _twiml_response(message: str) -> dict[str, Any]:
    response = MessagingResponse()
    response.message(message)
    return {
        "statusCode": "200",
        "headers": {"Content-Type": "text/xml"},
        "body": str(response),
        "isBase64Encoded": False,
    }


def _reply_text(outcome: str, message: str) -> str:
    if outcome == USER_ERROR:
        return f"User error when running command: {message}"
    if outcome == SYSTEM_ERROR:
        return f"System error when running command: {message}"
    return message


def handler(event: dict[str, Any], _context: Any) -> dict[str, Any]:
    start = time.time()
    wide_event: dict[str, Any] = {
        "event": "marcus_receive_sms",
        "schema_version": SCHEMA_VERSION,
        "request_id": _request_id(event),
        "ts": _now_iso(),
    }

    try:
        form = _parse_form_body(event)
        wide_event["message_sid"] = form.get("MessageSid", "")

        from_number = form.get("From", "").strip()
        wide_event["from_suffix"] = _mask_number(from_number)
        if not from_number or from_number not in _approved_numbers():
            wide_event["outcome"] = "unauthorized"
            return _twiml_response("You are not authorized.")

        if not list_store.is_configured():
            wide_event["outcome"] = "misconfigured"
            return _twiml_response("Server misconfigured.")

        user_message = form.get("Body", "")
        if not user_message.strip():
            wide_event["outcome"] = "missing_body"
            return _twiml_response("Error getting user message.")

        tokens, _ = tokenize(user_message)
        if tokens:
            # Arguments may carry list contents; log only the command head.
            wide_event["command"] = "".join(t.text for t in tokens if t.kind != ARGUMENT)
            wide_event["arg_count"] = sum(1 for t in tokens if t.kind == ARGUMENT)

        result = evaluate(user_message)
        wide_event["result_outcome"] = result.outcome
        wide_event["outcome"] = "success" if result.ok else "command_failed"
        return _twiml_response(_reply_text(result.outcome, result.message))
    except Exception as exc:
        wide_event["outcome"] = "error"
        wide_event["error"] = {"type": type(exc).__name__, "message": str(exc)}
        return _twiml_response(f"Uncaught error when running command: {exc}")
    finally:
        wide_event["duration_ms"] = int((time.time() - start) * 1000)
        print(json.dumps(wide_event, separators=(",", ":"), sort_keys=True))
