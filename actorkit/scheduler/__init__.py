"""Durable task scheduling: schedules, their store, and the Alarms scheduler."""
