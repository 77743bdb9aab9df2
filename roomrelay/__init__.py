"""Real-time chat-room relay: room registry, presence and broadcast."""

__version__ = "1.0.0"
