"""Core interaction framework package.

Contains the platform-neutral machinery behind the bot: annotation metadata,
routing strings, cooldown tracking, confirmation prompt bookkeeping, pagination
state, the per-scope command registry and event/cron hook bindings.
"""
