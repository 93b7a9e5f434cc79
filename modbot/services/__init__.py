"""Persistence services package.

Contains the entity store used to keep known chats and per-chat module
settings, with SQLite and in-memory implementations.
"""
