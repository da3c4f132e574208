"""Smoke-test harness for eth/debug/zks JSON-RPC nodes."""

__version__ = "0.1.0"
