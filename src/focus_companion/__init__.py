"""Focus companion: one working task, timed nudges, and a chatty persona that keeps you on track."""

__version__ = "0.1.0"
