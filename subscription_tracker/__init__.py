"""Subscription Tracker - Backend.

A small REST API for keeping track of recurring subscriptions
(streaming, software, gym, ...):

- Users sign up / sign in and receive a JWT access token.
- Each user manages their own subscription records.
- Renewal dates are derived from the start date and billing frequency,
  and lapsed subscriptions are flipped to inactive when they are saved.

See README for setup and usage.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
