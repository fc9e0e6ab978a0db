import re

# every construct starts and ends on a word boundary
ALIGN = 4

# some convenience functions
def alignup(value, align=ALIGN):
    return -(-value // align) * align

def aligndown(value, align=ALIGN):
    return (value // align) * align

def isaligned(value, align=ALIGN):
    return value % align == 0

def shoutysnake(name):
    """
    Convert a config key into a linker-script friendly name.
    core0 -> CORE0, boot-rom -> BOOT_ROM, sramBank -> SRAM_BANK
    """
    name = re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', name)
    return re.sub(r'[^0-9a-zA-Z]+', '_', name).strip('_').upper()
