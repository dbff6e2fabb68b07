"""Domain layer for bankconv."""

from bankconv.domain.camt_converter import CamtToDatevConverter, DatevToCamtConverter
from bankconv.domain.camt_mt940_converter import CamtToMt940Converter, Mt940ToCamtConverter
from bankconv.domain.mt940_converter import DatevToMt940Converter, Mt940ToDatevConverter

__all__ = [
    "DatevToCamtConverter",
    "CamtToDatevConverter",
    "DatevToMt940Converter",
    "Mt940ToDatevConverter",
    "CamtToMt940Converter",
    "Mt940ToCamtConverter",
]
