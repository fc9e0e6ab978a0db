"""
Errors raised while compiling a memory layout.

ConfigError means the layout description itself is malformed and must be
fixed by the user. LayoutError and its variants mean the description is
well-formed but does not fit in the declared memory. Both are terminal for
the compilation of the affected stage.
"""


class ConfigError(ValueError):
    """
    Malformed or incomplete layout description. FIELD is the dotted path of
    the offending entry, when there is one.
    """
    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field

    def __str__(self):
        if self.field and self.field not in self.message:
            return '%s: %s' % (self.field, self.message)
        return self.message


class LayoutError(Exception):
    """
    Layout that does not fit. STAGE is filled in by the assembler so errors
    from the relocated stage can be told apart from the base stage.
    """
    def __init__(self, message, stage=None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self):
        if self.stage is not None:
            return '%s stage: %s' % (self.stage, self.message)
        return self.message


class Overflow(LayoutError):
    """
    A single size resolves larger than its container. BANK is the memory
    bank the size was resolved against, when there is one.
    """
    def __init__(self, requested, available, name=None, bank=None,
            stage=None):
        super().__init__("Not enough memory%s%s for size=%#010x, "
            "only %#010x available (%d > %d bytes)" % (
                ' in ram.%s' % bank if bank else '',
                ' for %s' % name if name else '',
                requested, available, requested, available),
            stage=stage)
        self.name = name
        self.bank = bank
        self.requested = requested
        self.available = available


class HeapOverflow(LayoutError):
    """
    Pools of a heap add up to more than the heap's budget.
    """
    def __init__(self, heap, overflow, budget, stage=None):
        super().__init__("Pools%s need %d bytes but the heap "
            "only has %d bytes (overflow by %d bytes)" % (
                ' of heap.%s' % heap if heap else '',
                budget + overflow, budget, overflow),
            stage=stage)
        self.heap = heap
        self.overflow = overflow
        self.budget = budget


class BankOverflow(LayoutError):
    """
    Constructs assembled into a memory bank need REQUESTED bytes, more than
    the AVAILABLE bytes of the bank.
    """
    def __init__(self, bank, requested, available, stage=None):
        super().__init__("Not enough memory in ram.%s, sections need "
            "%d bytes but only %d are available (overflow by %d bytes)" % (
                bank, requested, available, requested - available),
            stage=stage)
        self.bank = bank
        self.requested = requested
        self.available = available

    @property
    def overflow(self):
        return self.requested - self.available


LayoutError.Overflow = Overflow
LayoutError.HeapOverflow = HeapOverflow
LayoutError.BankOverflow = BankOverflow
