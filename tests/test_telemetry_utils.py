from logs_to_azure.base_telemetry import BridgeTelemetry
from logs_to_azure.telemetry_utils import observe


def test_observe_nests_under_a_recording_span(config, in_memory_customizer, span_exporter):
    """Test decorated calls inside a trace get their own child span."""
    telemetry = BridgeTelemetry(config, customizers=[in_memory_customizer])

    @observe("compute_total")
    def compute_total(values):
        return sum(values)

    with telemetry.get_tracer().start_as_current_span("request") as parent:
        assert compute_total([1, 2, 3]) == 6

    spans = {span.name: span for span in span_exporter.get_finished_spans()}
    assert set(spans) == {"request", "compute_total"}
    assert spans["compute_total"].parent.span_id == parent.get_span_context().span_id
    assert spans["compute_total"].instrumentation_scope.name == __name__


def test_observe_defaults_to_the_qualified_name(config, in_memory_customizer, span_exporter):
    telemetry = BridgeTelemetry(config, customizers=[in_memory_customizer])

    @observe()
    def lookup():
        return "found"

    with telemetry.get_tracer().start_as_current_span("request"):
        lookup()

    names = [span.name for span in span_exporter.get_finished_spans()]
    assert any(name.endswith("lookup") for name in names)


def test_observe_outside_a_trace_runs_unwrapped(config, in_memory_customizer, span_exporter):
    BridgeTelemetry(config, customizers=[in_memory_customizer])

    @observe("untraced")
    def untraced():
        return 1

    assert untraced() == 1
    assert span_exporter.get_finished_spans() == ()


def test_observe_uses_an_explicit_tracer(config, in_memory_customizer, span_exporter):
    telemetry = BridgeTelemetry(config, customizers=[in_memory_customizer])
    tracer = telemetry.get_tracer()

    @observe("explicit", tracer=tracer)
    def explicit():
        return None

    with tracer.start_as_current_span("request"):
        explicit()

    spans = {span.name: span for span in span_exporter.get_finished_spans()}
    assert spans["explicit"].instrumentation_scope.name == "logs_to_azure"
