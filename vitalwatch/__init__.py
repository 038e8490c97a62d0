"""Anomaly detection for periodic vital-sign readings of monitored subjects.

The engine classifies each reading in real time against a per-subject rolling
window, and replays stored history retrospectively through the same logic.
"""
