#!/usr/bin/env python3
"""Back-office smoke run: creates a throwaway teacher/student and walks one lesson through the ledger."""

from __future__ import annotations

import argparse
import random
import string
import time
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

import httpx


@dataclass
class SmokeContext:
    base_url: str
    api_prefix: str
    timeout_seconds: float
    verify_tls: bool
    retries: int
    retry_delay_seconds: float


def _random_suffix(length: int = 6) -> str:
    chars = string.ascii_lowercase + string.digits
    return "".join(random.choice(chars) for _ in range(length))


def _api_url(ctx: SmokeContext, path: str) -> str:
    return f"{ctx.base_url}{ctx.api_prefix}{path}"


def _step(name: str) -> None:
    print(f"\n==> {name}")


def _request(
    client: httpx.Client,
    ctx: SmokeContext,
    method: str,
    url: str,
    *,
    step_name: str,
    expected_status: int = 200,
    **kwargs: Any,
) -> dict[str, Any]:
    for attempt in range(ctx.retries + 1):
        try:
            resp = client.request(method, url, **kwargs)
        except (httpx.ConnectTimeout, httpx.ReadTimeout, httpx.ConnectError, httpx.RemoteProtocolError) as exc:
            if attempt >= ctx.retries:
                raise RuntimeError(f"{step_name} request failed: {exc}") from exc
            print(f"{step_name}: transient error ({exc}), retrying ({attempt + 1}/{ctx.retries})...")
            time.sleep(ctx.retry_delay_seconds)
            continue
        # 409 with retryable=true is a ledger write that lost a race; resubmit it.
        retryable = resp.status_code in {502, 503, 504} or (
            resp.status_code == 409 and resp.headers.get("content-type", "").startswith("application/json")
            and resp.json().get("retryable") is True
        )
        if retryable and attempt < ctx.retries:
            print(f"{step_name}: transient HTTP {resp.status_code}, retrying ({attempt + 1}/{ctx.retries})...")
            time.sleep(ctx.retry_delay_seconds)
            continue
        if resp.status_code != expected_status:
            raise RuntimeError(
                f"{step_name} failed: expected HTTP {expected_status}, got {resp.status_code}. Body: {resp.text}"
            )
        return resp.json()
    raise RuntimeError(f"{step_name} failed unexpectedly.")


def _expect(actual: Any, expected: Any, what: str) -> None:
    if actual != expected:
        raise RuntimeError(f"{what}: expected {expected!r}, got {actual!r}")


def run_smoke(ctx: SmokeContext, *, cleanup: bool) -> None:
    run_id = f"{int(time.time())}-{_random_suffix()}"
    start = date.today() + timedelta(days=1)

    with httpx.Client(timeout=ctx.timeout_seconds, verify=ctx.verify_tls) as client:
        _step("Health checks")
        _expect(_request(client, ctx, "GET", f"{ctx.base_url}/healthz", step_name="GET /healthz")["status"], "ok", "/healthz")
        _expect(_request(client, ctx, "GET", f"{ctx.base_url}/readyz", step_name="GET /readyz")["status"], "ready", "/readyz")

        _step("Create teacher and student")
        teacher = _request(
            client,
            ctx,
            "POST",
            _api_url(ctx, "/teachers"),
            step_name="POST /teachers",
            expected_status=201,
            json={"name": f"Smoke Teacher {run_id}", "rate_per_lesson": "100"},
        )
        student = _request(
            client,
            ctx,
            "POST",
            _api_url(ctx, "/students"),
            step_name="POST /students",
            expected_status=201,
            json={"name": f"Smoke Student {run_id}", "phone": "0000000000", "teacher_id": teacher["id"]},
        )
        _expect(student["status"], "Grace", "new student status")

        _step("Buy a 4-lesson package with a weekly schedule")
        purchase = _request(
            client,
            ctx,
            "POST",
            _api_url(ctx, f"/students/{student['id']}/packages"),
            step_name="POST /students/{id}/packages",
            expected_status=201,
            json={
                "amount": "400",
                "lessons_purchased": 4,
                "start_date": start.isoformat(),
                "teacher_id": teacher["id"],
                "weekly_schedule": [{"day_of_week": 0, "time_slot": "17:00"}, {"day_of_week": 3, "time_slot": "17:00"}],
            },
        )
        _expect(purchase["new_wallet"], 4, "wallet after purchase")
        _expect(purchase["status"], "Active", "status after purchase")
        _expect(len(purchase["lessons"]), 4, "generated lessons")

        _step("Complete one lesson")
        lesson_id = purchase["lessons"][0]["id"]
        lesson = _request(
            client,
            ctx,
            "POST",
            _api_url(ctx, f"/lessons/{lesson_id}/mark"),
            step_name="POST /lessons/{id}/mark",
            json={"status": "completed"},
        )
        _expect(lesson["charged_to"], "wallet", "charged side")
        student = _request(client, ctx, "GET", _api_url(ctx, f"/students/{student['id']}"), step_name="GET /students/{id}")
        _expect((student["wallet_balance"], student["status"]), (3, "Active"), "balance after completion")

        if cleanup:
            _step("Delete remaining generated lessons")
            for item in purchase["lessons"][1:]:
                _request(
                    client,
                    ctx,
                    "DELETE",
                    _api_url(ctx, f"/lessons/{item['id']}"),
                    step_name="DELETE /lessons/{id}",
                )

        ledger = _request(
            client,
            ctx,
            "GET",
            _api_url(ctx, f"/students/{student['id']}/ledger"),
            step_name="GET /students/{id}/ledger",
        )
        print(f"Ledger entries recorded: {len(ledger)}")

    print("\nSUCCESS: smoke checks passed.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run back-office smoke checks against a deployed API.")
    parser.add_argument("--base-url", required=True, help="Backend base URL, e.g. https://academy-api.example.com")
    parser.add_argument("--api-prefix", default="/api/v1", help="API prefix (default: /api/v1)")
    parser.add_argument("--timeout", type=float, default=20.0, help="HTTP timeout in seconds")
    parser.add_argument("--retries", type=int, default=3, help="Retries for transient network/5xx/409-retryable errors")
    parser.add_argument("--retry-delay", type=float, default=5.0, help="Delay between retries in seconds")
    parser.add_argument("--insecure", action="store_true", help="Disable TLS certificate verification")
    parser.add_argument("--keep-lessons", action="store_true", help="Leave the generated lessons in place")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    ctx = SmokeContext(
        base_url=args.base_url.strip().rstrip("/"),
        api_prefix="/" + args.api_prefix.strip("/"),
        timeout_seconds=args.timeout,
        verify_tls=not args.insecure,
        retries=max(0, args.retries),
        retry_delay_seconds=max(0.0, args.retry_delay),
    )
    run_smoke(ctx, cleanup=not args.keep_lessons)


if __name__ == "__main__":
    main()
