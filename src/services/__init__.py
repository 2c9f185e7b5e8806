"""Utility billing services: allocation engine, bill lifecycle and meter readings."""
