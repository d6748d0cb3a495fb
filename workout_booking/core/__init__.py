"""
Core business logic for workout booking.

This module is framework-agnostic - it doesn't import FastAPI, SQLAlchemy,
or any infrastructure concerns. The booking rules can be tested in
isolation against any store that satisfies the Protocols in stores.py.
"""
