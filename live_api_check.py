#!/usr/bin/env python3
"""Run live connectivity checks against OpenAI, RunwayML, and HeyGen services."""

from __future__ import annotations

import argparse
import sys
import textwrap
from typing import Iterable

from feedgen.formats import resolve
from feedgen.normalizer import normalize, normalize_job
from feedgen.services.heygen import HeyGenClient
from feedgen.services.openai_client import OpenAIClient
from feedgen.services.runway import RunwayClient
from feedgen.types import AssetResult, ContentType, GenerationRequest, JobStatus, Provider


def _build_request(
    channel: str,
    content_type: ContentType,
    product_name: str,
    instruction: str | None,
    reference_image_url: str | None = None,
) -> GenerationRequest:
    resolved = resolve(channel, content_type, item_name=product_name, instruction=instruction)
    return GenerationRequest(
        item_id="live_api_check",
        item_name=product_name,
        item_description="",
        channel=channel,
        content_type=content_type,
        format_spec=resolved.format_spec,
        instruction=resolved.instruction,
        reference_image_url=reference_image_url,
    )


def run_openai_test(api_key: str, api_url: str | None, product_name: str, instruction: str | None) -> AssetResult:
    client = OpenAIClient(api_key=api_key, api_url=api_url, use_mock=False)
    request = _build_request("instagram", ContentType.TEXT, product_name, instruction)
    return normalize(Provider.OPENAI, client.submit(request), ContentType.TEXT)


def run_runway_test(
    api_key: str,
    api_url: str | None,
    product_name: str,
    instruction: str | None,
    reference_image_url: str | None,
) -> AssetResult:
    client = RunwayClient(api_key=api_key, api_url=api_url, use_mock=False)
    request = _build_request("instagram", ContentType.IMAGE, product_name, instruction, reference_image_url)
    return normalize(Provider.RUNWAY, client.submit(request), ContentType.IMAGE)


def run_heygen_test(api_key: str, api_url: str | None, job_id: str | None) -> str:
    client = HeyGenClient(api_key=api_key, api_url=api_url, use_mock=False)
    if job_id:
        job: JobStatus = normalize_job(client.check_status(job_id))
        return f"Job {job.job_id} is {job.status.value} ({job.url or 'no URL yet'})"
    jobs = client.list_jobs()
    return f"Listed {len(jobs)} HeyGen jobs."


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=textwrap.dedent(
            """\
            Smoke-test connectivity for OpenAI, RunwayML, and HeyGen services.
            Each check only runs when the corresponding --*-key argument is supplied; otherwise it is skipped.
            HeyGen is checked read-only so no paid video job is started.
            """
        ),
    )

    parser.add_argument("--product-name", default="Trail Runner Sneaker", help="Product name used in prompts.")
    parser.add_argument("--instruction", help="Optional operator instruction; channel defaults apply otherwise.")

    parser.add_argument("--openai-key", help="OpenAI API key")
    parser.add_argument("--openai-url", help="Optional OpenAI-compatible base URL.")

    parser.add_argument("--runway-key", help="RunwayML API key")
    parser.add_argument("--runway-url", help="RunwayML API base URL, defaults to https://api.runwayml.com/v1.")
    parser.add_argument("--runway-image", help="Optional https reference image URL for RunwayML.")

    parser.add_argument("--heygen-key", help="HeyGen API key")
    parser.add_argument("--heygen-url", help="HeyGen API base URL, defaults to https://api.heygen.com.")
    parser.add_argument("--heygen-job", help="Existing HeyGen video id to check instead of listing jobs.")

    return parser.parse_args(list(argv))


def _describe(result: AssetResult) -> tuple[bool, str]:
    if result.error_message:
        return False, result.error_message
    return True, (result.content or result.asset_url)[:200]


def main(argv: Iterable[str]) -> int:
    args = parse_args(argv)

    results: list[tuple[str, bool, str]] = []

    if args.openai_key:
        try:
            ok, detail = _describe(run_openai_test(args.openai_key, args.openai_url, args.product_name, args.instruction))
            results.append(("OpenAI", ok, detail))
        except Exception as exc:  # noqa: BLE001 - surface connectivity failures
            results.append(("OpenAI", False, repr(exc)))
    else:
        results.append(("OpenAI", False, "Skipped (no --openai-key provided)"))

    if args.runway_key:
        try:
            result = run_runway_test(
                args.runway_key,
                args.runway_url,
                args.product_name,
                args.instruction,
                args.runway_image,
            )
            ok, detail = _describe(result)
            results.append(("RunwayML", ok, detail))
        except Exception as exc:  # noqa: BLE001
            results.append(("RunwayML", False, repr(exc)))
    else:
        results.append(("RunwayML", False, "Skipped (no --runway-key provided)"))

    if args.heygen_key:
        try:
            results.append(("HeyGen", True, run_heygen_test(args.heygen_key, args.heygen_url, args.heygen_job)))
        except Exception as exc:  # noqa: BLE001
            results.append(("HeyGen", False, repr(exc)))
    else:
        results.append(("HeyGen", False, "Skipped (no --heygen-key provided)"))

    any_failure = False
    for name, ok, detail in results:
        status = "SUCCESS" if ok else "FAIL"
        print(f"[{name}] {status}: {detail}")
        if not ok and "Skipped" not in detail:
            any_failure = True

    return 0 if not any_failure else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
