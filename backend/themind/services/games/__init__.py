"""Game domain services: room registry, rules and deferred transitions.

Nothing in here emits Socket.IO events directly. The gateway calls into the
registry and the rules engine, then decides who hears about the result; the
scheduler only hands applied re-deals and expired rooms back to it.
"""
