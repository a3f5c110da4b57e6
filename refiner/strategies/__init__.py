"""
The `refiner.strategies` package holds one local search strategy per value
kind, together with the `Backup` record and the `StatementLocalSearch` base
class they share.
"""

from refiner.strategies.base import Backup, StatementLocalSearch
from refiner.strategies.boolean import BooleanLocalSearch
from refiner.strategies.numeric import CharLocalSearch, FloatLocalSearch, IntegerLocalSearch
from refiner.strategies.string import StringLocalSearch, random_string, string_successor

__all__ = [
    "Backup",
    "StatementLocalSearch",
    "BooleanLocalSearch",
    "CharLocalSearch",
    "FloatLocalSearch",
    "IntegerLocalSearch",
    "StringLocalSearch",
    "random_string",
    "string_successor",
]
