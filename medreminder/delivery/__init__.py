"""Outbound message queue and its drain step."""
