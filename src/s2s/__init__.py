"""scroll2study backend: study grid progress, streaks and achievements."""

__version__ = "0.1.0"
