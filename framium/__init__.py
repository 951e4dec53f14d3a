"""
Framium usage metering and plan enforcement.

Authorizes LLM chat requests against subscription plans, admits them against
monthly token quotas, dispatches them to provider adapters and records usage.
"""

__version__ = "1.0.0"
