"""ergomcutool: keep STM32CubeMX Makefiles and editor projects in sync."""

__version__ = "1.0.0"
