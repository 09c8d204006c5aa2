"""Measure how much startup time successive tracer agent releases add to a JVM application."""
