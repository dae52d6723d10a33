"""duet-chat: a terminal chat room for two, with an AI assistant on call."""

__version__ = '0.3.0'
