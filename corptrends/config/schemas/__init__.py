"""Configuration schemas."""

from corptrends.config.schemas.companies import CompanyCatalog, CompanyConfig


__all__ = ["CompanyCatalog", "CompanyConfig"]
