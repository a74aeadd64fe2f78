"""Postback processing: parsing, validation, extraction, attribution and relay."""
