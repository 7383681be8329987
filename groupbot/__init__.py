"""Group chat bot helpers: reminders and cron timers, moderation, welcome messages, MIDI and a pairing game."""

__version__ = "0.1.0"