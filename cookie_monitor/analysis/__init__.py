"""Tracker signatures, risk scoring, categorisation and summaries."""
