"""Telegram bot implementation package.

Contains all Telegram specific functionality: the interaction dispatcher that
receives updates, the command base classes, rendering of view models into
inline keyboards and localized message templates.
"""
