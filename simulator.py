"""Interactive CLI simulator — walk through the password-reset flow."""

import asyncio
import getpass

from reset_otp.client.api import ResetAPIClient
from reset_otp.client.flow import (
    STATE_AWAITING_CODE,
    STATE_VERIFIED,
    ResetFlow,
)
from reset_otp.database.engine import init_db

BLUE = "\033[94m"
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
DIM = "\033[2m"
BOLD = "\033[1m"
RESET = "\033[0m"


def _show(response) -> None:
    colour = GREEN if response.ok else RED
    print(f"{colour}{BOLD}[{response.state}]{RESET} {response.message}")
    if response.otp:
        print(f"{DIM}(development mode) code: {response.otp}{RESET}")
    print()


async def main() -> None:
    print(f"\n{BOLD}{'=' * 52}")
    print("  🔑  Password Reset — Flow Simulator")
    print(f"{'=' * 52}{RESET}\n")

    # ── Initialise database (powers the user store) ──────
    await init_db()

    print(f"{DIM}Tip: run seed.py first; a@example.com is a seeded account{RESET}")
    print(f"{DIM}     Commands while waiting for a code: 'resend', 'cancel', 'quit'{RESET}\n")

    # ── Start the API in the background ──────────────────
    import uvicorn
    from reset_otp.main import app

    config = uvicorn.Config(app, host="127.0.0.1", port=8000, log_level="warning")
    server = uvicorn.Server(config)
    server_task = asyncio.create_task(server.serve())

    # Give the server a moment to start
    await asyncio.sleep(0.5)

    flow = ResetFlow(ResetAPIClient("http://127.0.0.1:8000/api"))

    while flow.state != STATE_VERIFIED:
        try:
            if flow.state == STATE_AWAITING_CODE:
                code = input(f"{BLUE}{BOLD}Code:{RESET} ").strip()
            else:
                code = input(f"{YELLOW}Email or phone:{RESET} ").strip()
        except (KeyboardInterrupt, EOFError):
            print(f"\n{DIM}Goodbye!{RESET}")
            break

        if code.lower() == "quit":
            print(f"{DIM}Goodbye!{RESET}")
            break

        if flow.state != STATE_AWAITING_CODE:
            _show(await flow.request_code(code))
            continue

        if code.lower() == "resend":
            _show(await flow.resend())
            continue

        if code.lower() == "cancel":
            _show(flow.cancel())
            continue

        new_password = getpass.getpass("New password: ")
        confirm = getpass.getpass("Confirm password: ")
        _show(await flow.submit(code, new_password, confirm))

    # Shut down the background server
    server.should_exit = True
    await server_task


if __name__ == "__main__":
    asyncio.run(main())
