"""
Rules package.

Defines the underwriting rule model, the rule store contract with its
in-memory implementation, and the search/filter engine used by the
Appetite Service.

Modules of interest:
- models: Rule dataclass, priority ordinal and API schemas.
- store: RuleStore protocol and InMemoryRuleStore.
- search: Filter predicates, multi-key sorting and paginated search.

The evaluator and search engine only read from the store; writes go
through the catalog service.
"""
