"""
End-to-end walkthrough of the treatment registry.

This script exercises:
1. Configuration loading and validation
2. Patient and practitioner registration
3. Before/after image upload
4. Review submission and rating aggregation
5. Paid patient linking, including a failed payment rollback

Run with: uv run python demo_registry.py
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adapters.ledger import InMemoryLedger
from treatment_registry.config import get_config, print_config_summary, validate_config
from treatment_registry.domain.errors import AlreadyExists, TransferFailed
from treatment_registry.observability import configure_logging
from treatment_registry.services import InMemoryEventSink, Registry, build_registry

console = Console()

ALICE = "0xa11ce"
DR_BOB = "0xb0b"
ONBOARDING_ADMIN = "0xad31"


def check_configuration() -> bool:
    """Load configuration and print a summary."""

    console.print(Panel("Configuration", style="blue"))

    try:
        validate_config()
        print_config_summary()
        return True
    except Exception as e:
        console.print(f"Configuration check failed: {e}", style="red")
        return False


def check_images(registry: Registry) -> bool:
    """Register Alice and attach a before/after pair."""

    console.print(Panel("Registration & Images", style="blue"))

    try:
        patient_id = registry.register_patient("Alice", "1990-04-12", 62, 168, "F", ALICE)
        image_id = registry.upload_before_image(patient_id, "cidA", ALICE)
        registry.upload_after_image(image_id, "cidB", ALICE)

        try:
            registry.upload_after_image(image_id, "cidC", ALICE)
            console.print("Second after-image upload was accepted", style="red")
            return False
        except AlreadyExists:
            console.print("Second after-image upload rejected", style="green")

        image = registry.get_image(image_id)
        console.print(f"Image {image_id}: {image.as_tuple()}", style="green")
        return image.as_tuple() == (patient_id, "cidA", "cidB", True)

    except Exception as e:
        console.print(f"Image check failed: {e}", style="red")
        return False


def check_reviews(registry: Registry) -> bool:
    """Submit ratings 4, 2, 5 and show the running star rating."""

    console.print(Panel("Reviews & Rating", style="blue"))

    try:
        practitioner_id = registry.register_practitioner(
            "Dr. Bob", DR_BOB, "laser resurfacing, fillers", ONBOARDING_ADMIN
        )

        table = Table(title="Running Rating")
        table.add_column("Review", style="cyan")
        table.add_column("Rating", style="magenta")
        table.add_column("Stored Stars", style="green")

        stored = []
        for n, rating in enumerate([4, 2, 5], 1):
            registry.submit_review(1, practitioner_id, rating, f"visit {n}", DR_BOB)
            stars = registry.get_practitioner(practitioner_id).star_rating
            stored.append(stars)
            table.add_row(str(n), str(rating), str(stars))

        console.print(table)
        return stored == [4, 3, 3]

    except Exception as e:
        console.print(f"Review check failed: {e}", style="red")
        return False


def check_linking(registry: Registry, ledger: InMemoryLedger) -> bool:
    """Pay a practitioner once successfully and once with insufficient funds."""

    console.print(Panel("Linking & Payment", style="blue"))

    try:
        patient_id, _ = registry.get_patient_by_address(ALICE)
        practitioner_id, _ = registry.get_practitioner_by_address(DR_BOB)

        ledger.deposit(ALICE, 100)
        registry.link_patient_to_practitioner(patient_id, practitioner_id, ALICE, 60)
        linked = registry.get_practitioner_patients(practitioner_id)

        try:
            overdraft = ledger.balance_of(ALICE) + 1
            registry.link_patient_to_practitioner(patient_id, practitioner_id, ALICE, overdraft)
        except TransferFailed as e:
            console.print(f"Payment rejected: {e}", style="yellow")

        after_failure = registry.get_practitioner_patients(practitioner_id)
        console.print(
            f"Alice balance: {ledger.balance_of(ALICE)}, Dr. Bob balance: "
            f"{ledger.balance_of(DR_BOB)}",
            style="green",
        )
        return linked == after_failure == [patient_id]

    except Exception as e:
        console.print(f"Linking check failed: {e}", style="red")
        return False


def run_all_checks() -> None:
    """Run the full walkthrough against a fresh registry."""

    console.print(Panel("Treatment Registry - Walkthrough", style="bold blue"))

    config = get_config()
    configure_logging(config.logging)

    ledger = InMemoryLedger(opening_balance=config.ledger.opening_balance, unit=config.ledger.unit)
    sink = InMemoryEventSink()
    registry = build_registry(config, ledger=ledger, sinks=[sink])

    checks = [
        ("Configuration", check_configuration),
        ("Images", lambda: check_images(registry)),
        ("Reviews", lambda: check_reviews(registry)),
        ("Linking", lambda: check_linking(registry, ledger)),
    ]

    results = []
    for check_name, check_func in checks:
        console.print(f"\n{'=' * 60}")
        results.append((check_name, check_func()))

    console.print(f"\n{'=' * 60}")
    summary_table = Table(title="Results")
    summary_table.add_column("Check", style="cyan")
    summary_table.add_column("Result", style="white")

    passed = 0
    for check_name, result in results:
        summary_table.add_row(check_name, "PASSED" if result else "FAILED")
        passed += int(result)

    console.print(summary_table)
    console.print(f"\nResults: {passed}/{len(results)} checks passed")
    console.print(f"Events emitted: {len(sink.events)}")


if __name__ == "__main__":
    try:
        run_all_checks()
    except KeyboardInterrupt:
        console.print("\nStopped by user", style="yellow")
