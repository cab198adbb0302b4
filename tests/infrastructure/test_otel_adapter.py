import pytest

import medcite.infrastructure.telemetry.otel_adapter as otel_mod
from medcite.infrastructure.telemetry.otel_adapter import OpenTelemetryAdapter, OtelConfig


class FakeInstrument:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def add(self, amount, attributes=None):  # noqa: ANN001
        self.calls.append(("add", amount, attributes))

    def record(self, value, attributes=None):  # noqa: ANN001
        self.calls.append(("record", value, attributes))


class FakeMeter:
    def __init__(self) -> None:
        self.instruments: dict[str, FakeInstrument] = {}

    def create_counter(self, name, description=""):  # noqa: ANN001
        return self.instruments.setdefault(name, FakeInstrument())

    def create_histogram(self, name, description=""):  # noqa: ANN001
        return self.instruments.setdefault(name, FakeInstrument())


@pytest.fixture
def no_otel(monkeypatch):
    def _missing(name):  # noqa: ANN001
        raise ImportError(name)

    monkeypatch.setattr(otel_mod, "import_module", _missing)


def test_without_sdk_every_call_is_a_noop(no_otel):
    adapter = OpenTelemetryAdapter(OtelConfig())
    assert adapter.enabled is False
    adapter.incr("retrieval.requests")
    adapter.observe("answer.citations", 2.0, {"grounded": True})


def test_counters_and_histograms_are_created_once(no_otel):
    adapter = OpenTelemetryAdapter(OtelConfig())
    meter = FakeMeter()
    adapter._meter = meter

    adapter.incr("retrieval.requests")
    adapter.incr("retrieval.requests", {"specialty": "cardiology"})
    adapter.observe("retrieval.passages", 3.0)

    assert meter.instruments["retrieval.requests"].calls == [
        ("add", 1, {}),
        ("add", 1, {"specialty": "cardiology"}),
    ]
    assert meter.instruments["retrieval.passages"].calls == [("record", 3.0, {})]


def test_metric_errors_do_not_propagate(no_otel):
    class BrokenMeter:
        def create_counter(self, **kwargs):  # noqa: ANN003
            raise RuntimeError("exporter down")

    adapter = OpenTelemetryAdapter(OtelConfig())
    adapter._meter = BrokenMeter()
    adapter.incr("retrieval.failures")
