"""Offline submission sync for Fitness Focus.

Modules:
    engine: Drain the local queue against a backend (at-least-once replay)
    dedup : Submission keys that make replays idempotent in the store
"""
