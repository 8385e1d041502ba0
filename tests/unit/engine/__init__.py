"""
Tests for the detection and entry engine.
"""
