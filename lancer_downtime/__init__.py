"""Lancer Downtime Tracker: downtime actions, markers and roll resolution."""
