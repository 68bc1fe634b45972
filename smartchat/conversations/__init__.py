"""Conversation metadata harvested from intercepted chat-service responses."""
