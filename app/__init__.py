"""Pastebin Lite - self-destructing text pastes."""
