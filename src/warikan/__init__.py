"""Калькулятор раздела счёта (warikan)."""
