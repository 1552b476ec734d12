"""Adapters layer - concrete implementations at the system's edges.

Inbound adapters (SQL parser, REST API, CLI) turn requests into engine
calls; outbound adapters (JSON snapshot store) implement ports.
"""
