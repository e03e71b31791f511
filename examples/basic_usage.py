"""
Rehab Platform Python SDK - Basic Usage Example

Logs in, lists a therapist's clients, creates a program and watches its
progress. Requests fail without a reachable API; the errors show how failures
surface.
"""

import asyncio

from rehab_client import (
    AuthenticationError,
    CancellationToken,
    LoginCredentials,
    NetworkError,
    ProgramExercise,
    RehabAsyncClient,
    RehabError,
    ValidationError,
    build_program,
    create_config,
    create_rehab_client,
    iter_pages,
)


def sync_example():
    """Synchronous client example."""
    print("=== Sync Client Example ===\n")

    with create_rehab_client(api_key="key_example", environment="staging", enable_logging=True) as client:
        print(f"Client initialized (base_url={client.base_url})")

        try:
            session = client.auth.login(LoginCredentials(
                email="therapist@clinic.example",
                password="SecurePassword123!",
            ))
            print(f"Logged in as: {session.data.user.full_name}")

            for page in iter_pages(client.clients.list, status="active"):
                for record in page.data:
                    print(f"  {record.full_name} ({record.diagnosis or 'no diagnosis'})")
        except AuthenticationError as e:
            print(f"Auth failed: {e.message}")
        except RehabError as e:
            print(f"{e.kind.value} (expected without real API): {e.message}")

    # Programs are validated before anything is sent
    try:
        build_program("", exercises=[ProgramExercise(name="Bridge", sets=0)])
    except ValidationError as e:
        print(f"Rejected program: {e.field_errors}")


async def async_example():
    """Asynchronous client example."""
    print("\n=== Async Client Example ===\n")

    config = create_config("key_example", environment="staging", timeout=5, max_retry_attempts=1)
    async with RehabAsyncClient(config) as client:
        draft = build_program(
            "ACL Rehab Phase 1",
            client_id="client_1",
            sessions_per_week=3,
            exercises=[
                ProgramExercise(name="Quad sets", sets=3, reps=10),
                ProgramExercise(name="Heel slides", sets=2, duration_seconds=60),
            ],
        )

        token = CancellationToken()
        asyncio.get_running_loop().call_later(2.0, token.cancel, "took too long")
        try:
            program = await client.programs.create(draft)
            print(f"Created program {program.data.id}")
        except NetworkError as e:
            print(f"Network error (expected without real API): {e.message}")
        except RehabError as e:
            print(f"{e.kind.value}: {e.message}")

        try:
            page = await client.programs.list(status="active", cancellation=token)
            print(f"{len(page.data)} active programs, more: {page.has_more}")
        except RehabError as e:
            print(f"{e.kind.value}: {e.message}")

        poller = client.watch_program(
            "prog_1",
            interval=0.5,
            on_update=lambda envelope: print(f"Progress: {envelope.data.progress}"),
            on_error=lambda error: print(f"Poll failed: {error.kind.value}"),
        )
        await asyncio.sleep(1.5)
        await poller.stop()


if __name__ == "__main__":
    sync_example()
    asyncio.run(async_example())
