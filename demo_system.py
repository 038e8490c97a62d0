"""
End-to-end demonstration of the vital-sign monitoring pipeline.

This script walks through:
1. Configuration loading
2. Live ingestion with alert dispatch for the default roster
3. Retrospective replay over the stored history
4. A second replay showing that nothing is reported twice

Run with: uv run python demo_system.py
"""

import asyncio
import random
from datetime import UTC, datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adapters.memory.store import InMemoryHealthStore
from vitalwatch.config import get_config
from vitalwatch.domain.models import SubjectProfile, VitalSample
from vitalwatch.domain.profiles import DEFAULT_SUBJECTS
from vitalwatch.logging_config import configure_logging
from vitalwatch.services import (
    AlertEvent,
    AnomalyDetector,
    MonitoringService,
    RetrospectiveRequest,
    RetrospectiveRunner,
)

console = Console()

SAMPLE_INTERVAL = timedelta(minutes=5)


def generate_samples(
    profile: SubjectProfile, start: datetime, count: int, rng: random.Random
) -> list[VitalSample]:
    """Produce vitals around the subject's baseline with a few injected episodes."""
    baseline = profile.baseline_vitals
    samples = []
    for i in range(count):
        heart_rate = round(rng.gauss(baseline["hr"].normal, 4))
        spo2 = round(rng.gauss(baseline["spo2"].normal, 0.6))
        fall_risk = rng.uniform(5, 25)

        # Episodes: a tachycardic spike, a desaturation and one fall
        if i == count // 2:
            heart_rate = profile.alert_thresholds.heart_rate_critical[1] + 10
        if i == count - 5:
            spo2 = profile.alert_thresholds.spo2_critical - 3
        if i == count - 2 and profile.id == "P002":
            fall_risk = 91.0

        samples.append(
            VitalSample(
                subject_id=profile.id,
                heart_rate=heart_rate,
                blood_pressure=(
                    f"{round(rng.gauss(baseline['systolic'].normal, 5))}/"
                    f"{round(rng.gauss(baseline['diastolic'].normal, 3))}"
                ),
                spo2=min(100, spo2),
                body_temperature=round(rng.gauss(baseline["temp"].normal, 0.15), 1),
                motion_level=round(rng.uniform(0.2, 0.45), 2),
                fall_risk_score=round(fall_risk, 1),
                timestamp=start + SAMPLE_INTERVAL * i,
                sensor_id=f"SENSOR-{profile.id}",
            )
        )
    return samples


def print_alert(event: AlertEvent) -> None:
    style = "red" if event.severity == "critical" else "yellow"
    for alert in event.result.alerts:
        console.print(f"  [{event.subject_id}] {alert.message}", style=style)


async def demo_configuration() -> bool:
    console.print(Panel("Configuration", style="blue"))
    config = get_config()
    configure_logging(config.logging)

    table = Table(title="Active Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Environment", config.environment)
    table.add_row("Log Level", config.logging.level)
    table.add_row("Window Capacity", str(config.detection.window_capacity))
    table.add_row("Circadian Clock", config.detection.circadian_clock)
    table.add_row("Retrospective Context", str(config.retrospective.context_limit))
    console.print(table)
    return True


async def demo_live_monitoring(store: InMemoryHealthStore) -> bool:
    console.print(Panel("Live Monitoring", style="blue"))
    config = get_config()
    rng = random.Random(7)
    start = datetime.now(UTC) - SAMPLE_INTERVAL * 48

    service = MonitoringService(
        detector=AnomalyDetector(config.detection),
        repository=store,
        profiles=DEFAULT_SUBJECTS,
        handlers=[print_alert],
        config=config.monitoring,
    )

    samples = [
        sample
        for profile in DEFAULT_SUBJECTS
        for sample in generate_samples(profile, start, 48, rng)
    ]
    report = await service.ingest_batch(samples)

    table = Table(title="Live Ingestion Summary")
    table.add_column("Subject", style="cyan")
    table.add_column("Samples", style="white")
    table.add_column("Anomalies", style="magenta")
    for profile in DEFAULT_SUBJECTS:
        results = report.results.get(profile.id, [])
        table.add_row(
            f"{profile.id} {profile.name}",
            str(len(results)),
            str(sum(1 for r in results if r.is_anomaly)),
        )
    console.print(table)

    for error in report.errors:
        console.print(f"Error: {error}", style="red")
    return not report.errors


async def demo_retrospective(store: InMemoryHealthStore) -> bool:
    console.print(Panel("Retrospective Replay", style="blue"))
    config = get_config()

    # Forget what live monitoring stored so the replay has something to find
    store.anomalies.clear()
    store.alert_logs.clear()

    runner = RetrospectiveRunner(
        store, detector=AnomalyDetector(config.detection), config=config.retrospective
    )
    first = await runner.run(RetrospectiveRequest())
    second = await runner.run(RetrospectiveRequest())

    table = Table(title="Retrospective Runs")
    table.add_column("Run", style="cyan")
    table.add_column("Records", style="white")
    table.add_column("New Anomalies", style="magenta")
    table.add_column("Critical", style="red")
    table.add_column("Warning", style="yellow")
    for label, summary in (("first", first), ("second", second)):
        table.add_row(
            label,
            str(summary.records_processed),
            str(summary.new_anomalies_detected),
            str(summary.critical_anomalies),
            str(summary.warning_anomalies),
        )
    console.print(table)

    if second.new_anomalies_detected:
        console.print("Second run reported anomalies again", style="red")
        return False
    return first.success and second.success


async def run_demo() -> None:
    console.print(Panel("VitalWatch - Anomaly Detection Demo", style="bold blue"))

    store = InMemoryHealthStore(profiles=DEFAULT_SUBJECTS)
    steps = [
        ("Configuration", demo_configuration),
        ("Live Monitoring", lambda: demo_live_monitoring(store)),
        ("Retrospective", lambda: demo_retrospective(store)),
    ]

    results = []
    for name, step in steps:
        console.print(f"\n{'=' * 60}")
        try:
            results.append((name, await step()))
        except Exception as e:
            console.print(f"{name} failed with exception: {e}", style="red")
            results.append((name, False))

    console.print(f"\n{'=' * 60}")
    summary_table = Table(title="Demo Results")
    summary_table.add_column("Step", style="cyan")
    summary_table.add_column("Result", style="white")
    for name, ok in results:
        summary_table.add_row(name, "PASSED" if ok else "FAILED")
    console.print(summary_table)


if __name__ == "__main__":
    try:
        asyncio.run(run_demo())
    except KeyboardInterrupt:
        console.print("\nDemo interrupted by user", style="yellow")
