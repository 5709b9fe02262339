#!/usr/bin/env python3
"""Command-line interface for the Milk Pool Ledger API.

Usage examples:
    python scripts/cli.py collect --supplier 7 --liters 100 --fat 4.0 --snf 8.5
    python scripts/cli.py collections --qc-status approved
    python scripts/cli.py eligible
    python scripts/cli.py qc 1 approved --reviewer 3
    python scripts/cli.py batch --created-by 3 --product 12 --yield 95 1 2 3
    python scripts/cli.py batches --pool 1
    python scripts/cli.py pool
    python scripts/cli.py withdraw 1 --liters 40 --purpose "Cheese run CH-17"
    python scripts/cli.py usage 1
    python scripts/cli.py book 1
    python scripts/cli.py reset 1 --user 3
    python scripts/cli.py archived
    python scripts/cli.py health
"""

import argparse
import json
import sys

import httpx

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0


def format_output(data: object) -> None:
    """Pretty-print a JSON-serialisable object."""
    print(json.dumps(data, indent=2, default=str))


def handle_response(response: httpx.Response) -> dict:
    """Return the JSON body or exit with an error message."""
    try:
        body = response.json()
    except ValueError:
        body = {"detail": response.text}

    if response.status_code >= 400:
        print(
            f"Error {response.status_code}: {body.get('detail', 'Unknown error')}",
            file=sys.stderr,
        )
        sys.exit(1)

    return body


def _drop_none(data: dict[str, object]) -> dict[str, object]:
    return {key: value for key, value in data.items() if value is not None}


def cmd_collect(args: argparse.Namespace, base_url: str) -> None:
    """Record a milk collection."""
    data = _drop_none(
        {
            "supplier_id": args.supplier,
            "quantity_liters": args.liters,
            "fat_percent": args.fat,
            "snf_percent": args.snf,
            "price_per_liter": args.price,
            "operator_id": args.operator,
            "collected_at": args.collected_at,
        }
    )
    resp = httpx.post(f"{base_url}/api/collections/", json=data, timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def cmd_collections(args: argparse.Namespace, base_url: str) -> None:
    """List collections with optional filters."""
    params = _drop_none(
        {
            "qc_status": args.qc_status,
            "consumption_status": args.consumption_status,
            "supplier_id": args.supplier,
            "skip": args.skip,
            "limit": args.limit,
        }
    )
    resp = httpx.get(f"{base_url}/api/collections/", params=params, timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def cmd_eligible(args: argparse.Namespace, base_url: str) -> None:
    """List approved collections not yet used in a batch."""
    params = {"skip": args.skip, "limit": args.limit}
    resp = httpx.get(
        f"{base_url}/api/collections/eligible",
        params=params,
        timeout=DEFAULT_TIMEOUT,
    )
    format_output(handle_response(resp))


def cmd_qc(args: argparse.Namespace, base_url: str) -> None:
    """Approve or reject a pending collection."""
    data = _drop_none({"status": args.status, "reviewed_by": args.reviewer})
    resp = httpx.post(
        f"{base_url}/api/collections/{args.id}/qc",
        json=data,
        timeout=DEFAULT_TIMEOUT,
    )
    format_output(handle_response(resp))


def cmd_batch(args: argparse.Namespace, base_url: str) -> None:
    """Create a batch from approved collections."""
    data = _drop_none(
        {
            "created_by": args.created_by,
            "collection_ids": args.collection_ids,
            "product_id": args.product,
            "yield_quantity": args.yield_quantity,
            "batch_code": args.batch_code,
            "expiry_date": args.expiry_date,
        }
    )
    resp = httpx.post(f"{base_url}/api/batches/", json=data, timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def cmd_batches(args: argparse.Namespace, base_url: str) -> None:
    """List batches, optionally for one pool."""
    params = _drop_none({"milk_pool_id": args.pool, "skip": args.skip, "limit": args.limit})
    resp = httpx.get(f"{base_url}/api/batches/", params=params, timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def cmd_pool(args: argparse.Namespace, base_url: str) -> None:
    """Show a pool by ID, or the active pool."""
    path = f"/api/pools/{args.id}" if args.id is not None else "/api/pools/active"
    resp = httpx.get(f"{base_url}{path}", timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def cmd_withdraw(args: argparse.Namespace, base_url: str) -> None:
    """Withdraw liters from the active pool."""
    data = _drop_none(
        {"quantity_liters": args.liters, "purpose": args.purpose, "used_by": args.user}
    )
    resp = httpx.post(
        f"{base_url}/api/pools/{args.id}/withdraw",
        json=data,
        timeout=DEFAULT_TIMEOUT,
    )
    format_output(handle_response(resp))


def cmd_usage(args: argparse.Namespace, base_url: str) -> None:
    """List withdrawals from a pool."""
    resp = httpx.get(
        f"{base_url}/api/pools/{args.id}/usage",
        params={"limit": args.limit},
        timeout=DEFAULT_TIMEOUT,
    )
    format_output(handle_response(resp))


def cmd_book(args: argparse.Namespace, base_url: str) -> None:
    """List the collections folded into a pool."""
    resp = httpx.get(
        f"{base_url}/api/pools/{args.id}/collections",
        timeout=DEFAULT_TIMEOUT,
    )
    format_output(handle_response(resp))


def cmd_reset(args: argparse.Namespace, base_url: str) -> None:
    """Archive the active pool and open a fresh one."""
    resp = httpx.post(
        f"{base_url}/api/pools/{args.id}/reset",
        json=_drop_none({"acting_user": args.user}),
        timeout=DEFAULT_TIMEOUT,
    )
    format_output(handle_response(resp))


def cmd_archived(args: argparse.Namespace, base_url: str) -> None:
    """List archived pools."""
    params = {"skip": args.skip, "limit": args.limit}
    resp = httpx.get(f"{base_url}/api/pools/archived", params=params, timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def cmd_health(args: argparse.Namespace, base_url: str) -> None:
    """Report the active pool invariant."""
    resp = httpx.get(f"{base_url}/health/pool", timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def _add_paging(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--skip", type=int, default=0, help="Pagination offset")
    parser.add_argument("--limit", type=int, default=100, help="Page size")


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cli.py",
        description="Milk Pool Ledger CLI",
    )
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help=f"API base URL (default: {DEFAULT_BASE_URL})",
    )

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    # --- collect ---
    p_collect = sub.add_parser("collect", help="Record a milk collection")
    p_collect.add_argument("--supplier", type=int, required=True, help="Supplier ID")
    p_collect.add_argument("--liters", type=float, required=True, help="Collected liters")
    p_collect.add_argument("--fat", type=float, help="Fat %")
    p_collect.add_argument("--snf", type=float, help="SNF %")
    p_collect.add_argument("--price", type=float, help="Price per liter")
    p_collect.add_argument("--operator", type=int, help="Intake operator ID")
    p_collect.add_argument("--collected-at", help="ISO 8601 timestamp (default: now)")

    # --- collections ---
    p_collections = sub.add_parser("collections", help="List collections")
    p_collections.add_argument("--qc-status", choices=["pending", "approved", "rejected"])
    p_collections.add_argument("--consumption-status", choices=["new", "used_in_batch"])
    p_collections.add_argument("--supplier", type=int, help="Supplier ID")
    _add_paging(p_collections)

    # --- eligible ---
    p_eligible = sub.add_parser("eligible", help="List collections ready for a batch")
    _add_paging(p_eligible)

    # --- qc ---
    p_qc = sub.add_parser("qc", help="Approve or reject a pending collection")
    p_qc.add_argument("id", type=int, help="Collection ID")
    p_qc.add_argument("status", choices=["approved", "rejected"])
    p_qc.add_argument("--reviewer", type=int, help="Reviewer ID")

    # --- batch ---
    p_batch = sub.add_parser("batch", help="Create a batch from collections")
    p_batch.add_argument("collection_ids", type=int, nargs="+", help="Collection IDs, in order")
    p_batch.add_argument("--created-by", type=int, required=True, help="User ID")
    p_batch.add_argument("--product", type=int, required=True, help="Product ID")
    p_batch.add_argument(
        "--yield", dest="yield_quantity", type=float, required=True, help="Produced quantity"
    )
    p_batch.add_argument("--batch-code", help="Batch code (generated when omitted)")
    p_batch.add_argument("--expiry-date", help="YYYY-MM-DD")

    # --- batches ---
    p_batches = sub.add_parser("batches", help="List batches")
    p_batches.add_argument("--pool", type=int, help="Only batches of this pool")
    _add_paging(p_batches)

    # --- pool ---
    p_pool = sub.add_parser("pool", help="Show the active pool or a pool by ID")
    p_pool.add_argument("id", type=int, nargs="?", help="Pool ID (default: active pool)")

    # --- withdraw ---
    p_withdraw = sub.add_parser("withdraw", help="Withdraw liters from the active pool")
    p_withdraw.add_argument("id", type=int, help="Active pool ID")
    p_withdraw.add_argument("--liters", type=float, required=True, help="Liters to withdraw")
    p_withdraw.add_argument("--purpose", help="Reason (e.g. production run ID)")
    p_withdraw.add_argument("--user", type=int, help="User ID")

    # --- usage ---
    p_usage = sub.add_parser("usage", help="List withdrawals from a pool")
    p_usage.add_argument("id", type=int, help="Pool ID")
    p_usage.add_argument("--limit", type=int, default=20, help="Number of entries")

    # --- book ---
    p_book = sub.add_parser("book", help="List the collections folded into a pool")
    p_book.add_argument("id", type=int, help="Pool ID")

    # --- reset ---
    p_reset = sub.add_parser("reset", help="Archive the active pool and open a new one")
    p_reset.add_argument("id", type=int, help="Active pool ID")
    p_reset.add_argument("--user", type=int, help="Acting user ID")

    # --- archived ---
    p_archived = sub.add_parser("archived", help="List archived pools")
    _add_paging(p_archived)

    # --- health ---
    sub.add_parser("health", help="Check the single active pool invariant")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    base_url: str = args.base_url

    dispatch = {
        "collect": cmd_collect,
        "collections": cmd_collections,
        "eligible": cmd_eligible,
        "qc": cmd_qc,
        "batch": cmd_batch,
        "batches": cmd_batches,
        "pool": cmd_pool,
        "withdraw": cmd_withdraw,
        "usage": cmd_usage,
        "book": cmd_book,
        "reset": cmd_reset,
        "archived": cmd_archived,
        "health": cmd_health,
    }

    handler = dispatch.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    handler(args, base_url)


if __name__ == "__main__":
    main()
