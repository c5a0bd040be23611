"""Mappers between inbound records and domain entities."""
