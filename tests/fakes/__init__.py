"""Test doubles for the remote engine, resource locators and scoring engine."""
