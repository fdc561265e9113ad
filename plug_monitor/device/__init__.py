"""Device telemetry providers: the provider protocol and the Tuya cloud client."""
