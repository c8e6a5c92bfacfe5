"""rebucket — группировка дубликатов crash-репортов по структуре стек-трейсов."""

__version__ = "0.1.0"
