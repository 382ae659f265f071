from voicesettings.common.enums import OutputFormat

__all__ = ["OutputFormat"]
