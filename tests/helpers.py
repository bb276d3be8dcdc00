from opentelemetry.sdk._logs.export import InMemoryLogExporter

CONNECTION_STRING = (
    "InstrumentationKey=00000000-0000-0000-0000-000000000000;"
    "IngestionEndpoint=https://westeurope-5.in.applicationinsights.azure.com/;"
    "LiveEndpoint=https://westeurope.livediagnostics.monitor.azure.com/"
)


def exported_bodies(log_exporter: InMemoryLogExporter) -> list:
    """Bodies of every log record the exporter has received, in order."""
    return [
        getattr(item, "log_record", item).body
        for item in log_exporter.get_finished_logs()
    ]
