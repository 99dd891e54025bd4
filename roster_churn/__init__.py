"""Churn roster scraper: finds members about to lapse on an admin roster page."""
