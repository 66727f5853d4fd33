"""Integrations with the provisioning engine."""
