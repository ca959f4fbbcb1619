"""Database layer: engine, sessions, models and transaction helpers."""
