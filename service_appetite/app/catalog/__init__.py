"""
Catalog package.

Carriers, products and users, plus the rule management write path
(create/update/delete with sequential identifiers).
"""
