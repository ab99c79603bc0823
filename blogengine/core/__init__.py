"""Shared configuration, logging, errors and helpers."""
