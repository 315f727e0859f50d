"""Inbound webhooks: payment gateway and monday.com board events."""
