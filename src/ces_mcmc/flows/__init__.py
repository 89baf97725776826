"""Prefect flows for calibrate-emulate-sample runs."""
