"""Runtime values, builtins, UTF-8 and XML primitives and ELF bytecode lookup for a small VM."""

__version__ = "0.1.0"

__all__ = ["values", "runtime", "utf8", "xml", "elf"]