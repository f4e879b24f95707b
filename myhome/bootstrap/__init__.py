"""Startup data seeding."""

from myhome.bootstrap.data_loader import DataLoader

__all__ = ["DataLoader"]
