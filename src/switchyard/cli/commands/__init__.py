"""CLI command implementations for Switchyard.

This module contains the command group implementations:
- agent: Register agents, assign, balance and dispatch
- queue: Manage the work queue
- config: Manage configuration
"""
