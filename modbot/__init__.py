"""Modbot Application Package.

A Telegram moderation bot built around pluggable command modules. Every group
chat the bot joins becomes its own scope with an independent copy of each
customizable module, its own settings and its own published command list.

The application follows a modular architecture with separate concerns for:
- Routing of slash commands, inline button callbacks and chat events
- Per-chat command registry and command list publishing
- Stateful interactive UI (paginated menus, settings panels, confirmations)
- Persistence of chats and module settings
"""
