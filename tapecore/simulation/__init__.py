from .runner import run_gateware


__all__ = ["run_gateware"]
