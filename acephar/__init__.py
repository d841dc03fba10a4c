"""acephar: a WhatsApp chat-bot command runtime."""

__version__ = "2.1.0"
