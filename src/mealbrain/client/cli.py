"""CLI client for the MealBrain API."""

from __future__ import annotations

import logging
from typing import (
    Any,
    Dict,
    List,
    Tuple,
    cast,
)

import httpx

from mealbrain.common import (
    AnsiColors,
    colored_print,
)
from mealbrain.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI Client
# ---------------------------------------------------------------------------
def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    import signal  # pylint: disable=import-outside-toplevel

    # Ensure SIGINT breaks out of slow system calls such as read()
    signal.siginterrupt(signal.SIGINT, True)

    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


def call_api(
    endpoint: str, data: Dict[str, Any], token: str | None, max_retries: int = 5
) -> Dict[str, Any]:
    """
    POST *data* to the API and return the decoded JSON body, with retries while it starts up.

    Failures are reported as ``{"error": "..."}`` instead of raising.
    """
    api_url = f"http://localhost:{settings.API_PORT}{endpoint}"
    headers = {"Authorization": f"Bearer {token}"} if token else {}

    for attempt in range(max_retries):
        try:
            with httpx.Client(timeout=settings.CHAT_TIMEOUT) as client:
                response = client.post(api_url, json=data, headers=headers)
                response.raise_for_status()
                return cast(Dict[str, Any], response.json())
        except httpx.HTTPError as e:
            # On connection refused, retry with exponential backoff
            if isinstance(e, httpx.ConnectError) and attempt < max_retries - 1:
                retry_delay = 0.5 * (2**attempt)  # 0.5s, 1s, 2s, 4s...
                logger.info(
                    "API not ready yet, retrying in %.1f seconds (attempt %d/%d)...",
                    retry_delay,
                    attempt + 1,
                    max_retries,
                )
                import time  # pylint: disable=import-outside-toplevel

                time.sleep(retry_delay)
                continue

            logger.error("API request error: %s", str(e))
            error_msg = f"Error connecting to API: {str(e)}"
            if isinstance(e, httpx.HTTPStatusError):
                try:
                    error_data = e.response.json()
                except ValueError:
                    error_data = {}
                if "detail" in error_data:
                    error_msg = f"API error: {error_data['detail']}"
            return {"error": error_msg}

    return {"error": f"Failed to connect to API after {max_retries} attempts"}


def ask_approval(preview: str) -> bool:
    """Prompt for a yes/no decision on one proposed change."""
    colored_print(f"  -> {preview}", AnsiColors.YELLOW)
    colored_print("     Approve? [y/N] ", AnsiColors.BLUE, end="")
    answer, ok = get_user_message()
    return ok and answer.lower() in {"y", "yes"}


def review_actions(actions: List[Dict[str, Any]], token: str | None) -> List[str]:
    """Ask about each proposed action and send the decision; returns the outcome messages."""
    outcomes = []
    for action in actions:
        approved = ask_approval(action.get("preview", action.get("toolName", "")))
        result = call_api(
            "/chat/approve",
            {
                "approval_id": action["id"],
                "approved": approved,
                "tool_name": action["toolName"],
                "tool_input": action["toolInput"],
            },
            token,
        )
        if "error" in result:
            colored_print(result["error"], AnsiColors.RED)
            outcomes.append(f"{action.get('preview')}: failed ({result['error']})")
        else:
            colored_print(result.get("message", ""), AnsiColors.GREEN)
            outcomes.append(f"{action.get('preview')}: {result.get('message', '')}")
    return outcomes


def run_cli(token: str | None = None) -> None:
    """Run the CLI client that communicates with the API."""
    token = token or settings.API_TOKEN
    if not token:
        colored_print("No API token configured (set API_TOKEN or run --mode seed)", AnsiColors.RED)
        return

    messages: List[Dict[str, Any]] = []
    colored_print("\nMealBrain shell - type 'exit' or 'quit' (or Ctrl+C) to exit", AnsiColors.GREEN)
    while True:
        colored_print("\nYou: ", AnsiColors.BLUE, end="")
        user_msg, ok = get_user_message()
        if not ok:
            break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
        if user_msg.lower() in {"exit", "quit"}:
            break
        if not user_msg:
            continue

        messages.append({"role": "user", "content": user_msg})
        response = call_api("/chat", {"messages": messages}, token)
        if "error" in response:
            colored_print(response["error"], AnsiColors.RED)
            messages.pop()
            continue

        reply = response.get("message", "No response from API")
        colored_print(reply, AnsiColors.YELLOW)
        usage = response.get("usage") or {}
        logger.debug("Token usage: %s", usage)

        if response.get("approval_required"):
            outcomes = review_actions(response.get("approval_actions", []), token)
            if outcomes:
                reply = reply + "\n\n" + "\n".join(outcomes)
        messages.append({"role": "assistant", "content": reply})


if __name__ == "__main__":
    run_cli()
