"""
Appetite Service package for the Appetite Checker backend.

This package decides whether a prospective insured business, identified by
NAICS code and location, fits a carrier's underwriting appetite. It provides:

- app.main: API surface for checker, search, management and analytics.
- app.rules: Rule model, rule store and the search/filter engine.
- app.checker: Eligibility evaluator, rule matching and confidence scoring.
- app.catalog: Carriers, products, users and rule management.
- app.analytics: Append-only event log and aggregate metrics.
- app.persistence: PostgreSQL write-through for rules and submissions.

Guidelines:
- Stores are constructed once per process and injected into components.
- The evaluator and search engine only read rules; they never see roles.
- Unmatched inputs fail open (default-allow or empty page), never raise.
"""
