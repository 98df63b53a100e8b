from typing import Union

# Backend identifiers arrive as numbers for catalog/cart records and as strings
# for orders, payment methods and admin users.
EntityId = Union[int, str]
