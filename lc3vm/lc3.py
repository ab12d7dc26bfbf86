"""
The LC-3 virtual machine: register file, memory (with the memory-mapped
keyboard), fetch/decode/execute loop and the console TRAP services.

Images are the usual ``.obj`` files: a big-endian origin word followed by
big-endian program words.
"""

from array import array
import sys

from .console import Console

MEMORY_MAX = 1 << 16
PC_START = 0x3000

# Memory mapped registers:
MR_KBSR = 0xFE00 # keyboard status
MR_KBDR = 0xFE02 # keyboard data

# Register positions; R0 - R7 are 0 - 7
R_PC = 8
R_COND = 9
R_COUNT = 10

# Condition flags, exactly one is held in COND:
FL_POS = 1 << 0
FL_ZRO = 1 << 1
FL_NEG = 1 << 2

HALT_MESSAGE = "HALT\n"
IN_PROMPT = "Enter a character: "

class HEX(int):
    def __repr__(self):
        return lc_hex(self)

def lc_hex(h):
    """ Format the value in the form xFFFF """
    return 'x%04X' % lc_bin(h)

def lc_bin(v):
    """ Truncate any extra bytes """
    return v & 0xFFFF

def sext(binary, bits):
    """
    Sign-extend the binary number, check the most significant
    bit
    """
    if binary & (1 << (bits - 1)):
        return lc_bin(binary | (0xFFFF << bits))
    else:
        return binary

def lc_int(v):
    """ The word as a signed (two's-complement) integer """
    if v & (1 << 15): # negative
        return -((~(v & 0xFFFF) + 1) & 0xFFFF)
    else:
        return v

def plus(v1, v2):
    """
    Add two words together, wrapping around at 16 bits.
    """
    return lc_bin(v1 + v2)

class LC3(object):
    """
    The LC3 Computer. This object loads and executes LC3 images.
    """
    mnemonic = {
        0b0000: "BR",
        0b0001: "ADD",
        0b0010: "LD",
        0b0011: "ST",
        0b0100: "JSR",
        0b0101: "AND",
        0b0110: "LDR",
        0b0111: "STR",
        0b1000: "RTI",
        0b1001: "NOT",
        0b1010: "LDI",
        0b1011: "STI",
        0b1100: "JMP",
        0b1101: "RES",
        0b1110: "LEA",
        0b1111: "TRAP",
    }

    def __init__(self, console=None, kernel=None):
        self.kernel = kernel
        self.console = console if console is not None else Console()
        # Functions for interpreting instructions:
        self.apply = {
            0b0000: self.BR,
            0b0001: self.ADD,
            0b0010: self.LD,
            0b0011: self.ST,
            0b0100: self.JSR, # and JSRR
            0b0101: self.AND,
            0b0110: self.LDR,
            0b0111: self.STR,
            0b1000: self.RESERVED, # RTI
            0b1001: self.NOT,
            0b1010: self.LDI,
            0b1011: self.STI,
            0b1100: self.JMP, # and RET
            0b1101: self.RESERVED, # RES
            0b1110: self.LEA,
            0b1111: self.TRAP,
        }
        # TRAP service routines, by vector:
        self.traps = {
            0x20: self.GETC,
            0x21: self.OUT,
            0x22: self.PUTS,
            0x23: self.IN,
            0x24: self.PUTSP,
            0x25: self.HALT,
        }
        self.reset()

    def reset(self):
        self.warn = True
        self.cont = True
        self.instruction_count = 0
        self.memory = array('H', [0] * MEMORY_MAX)
        self.register = dict((r, 0) for r in range(R_COUNT))
        self.set_pc(PC_START)
        self.register[R_COND] = FL_ZRO

    @property
    def halted(self):
        return not self.cont

    #### The following allow different hardware implementations:
    #### memory, register, nzp, and pc can be implemented in different
    #### means.
    def get_pc(self):
        return self.register[R_PC]

    def set_pc(self, value):
        self.register[R_PC] = HEX(lc_bin(value))

    def increment_pc(self, value=1):
        self.set_pc(self.get_pc() + value)

    def get_register(self, position):
        return self.register[position]

    def set_register(self, position, value):
        self.register[position] = lc_bin(value)

    def set_nzp(self, position):
        """
        Set COND from the sign of register[position]: zero, negative
        (bit 15 set) or positive.
        """
        value = self.register[position]
        if value == 0:
            self.register[R_COND] = FL_ZRO
        elif value >> 15:
            self.register[R_COND] = FL_NEG
        else:
            self.register[R_COND] = FL_POS

    def get_nzp(self):
        return self.register[R_COND]

    def get_memory(self, location):
        """
        Read a word. Reading the keyboard status register polls the
        console without blocking; a pending key sets the ready bit and
        is moved into the keyboard data register.
        """
        if location == MR_KBSR:
            if self.console.key_available():
                self.memory[MR_KBSR] = 1 << 15
                self.memory[MR_KBDR] = lc_bin(self.console.getc())
            else:
                self.memory[MR_KBSR] = 0
        return self.memory[location]

    def set_memory(self, location, value):
        self.memory[location] = lc_bin(value)

    #### End of overridden methods

    def Print(self, *args, end="\n"):
        if self.kernel:
            self.kernel.Print(*args, end=end)
        else:
            print(*args, end=end)

    def Error(self, string):
        if self.kernel:
            self.kernel.Error(string)
        else:
            sys.stderr.write(string)

    def load_image(self, filename):
        """
        Load an object file into memory. The first word is the origin,
        the rest is copied from there on. Returns (origin, count).
        """
        with open(filename, "rb") as fp:
            data = fp.read()
        if len(data) < 2:
            raise ValueError("image has no origin: %r" % filename)
        words = array('H')
        words.frombytes(data[:len(data) & ~1])
        if sys.byteorder == "little":
            words.byteswap()
        origin = words[0]
        count = min(len(words) - 1, MEMORY_MAX - origin)
        if count < len(words) - 1 and self.warn:
            self.Error("Warning: image %r truncated at end of memory (%d words dropped)\n" %
                       (filename, len(words) - 1 - count))
        self.memory[origin:origin + count] = words[1:1 + count]
        return HEX(origin), count

    def run(self):
        while self.cont:
            self.step()

    def step(self):
        if not self.cont:
            return
        instruction = self.get_memory(self.get_pc())
        instr = (instruction >> 12) & 0xF
        self.instruction_count += 1
        self.increment_pc()
        self.apply[instr](instruction)

    def dump_registers(self):
        self.Print()
        self.Print("=" * 60)
        self.Print("Registers:")
        self.Print("=" * 60)
        self.Print("PC:", lc_hex(self.get_pc()))
        nzp = self.get_nzp()
        for r, flag in zip("NZP", (FL_NEG, FL_ZRO, FL_POS)):
            self.Print("%s: %s" % (r, int(nzp == flag)), end=" ")
        self.Print()
        count = 1
        for key in range(8):
            value = self.get_register(key)
            self.Print("R%d: %s (%d)" % (key, lc_hex(value), lc_int(value)), end=" ")
            if count % 4 == 0:
                self.Print()
            count += 1

    def STR(self, instruction):
        src = (instruction & 0b0000111000000000) >> 9
        base = (instruction & 0b0000000111000000) >> 6
        offset6 = instruction & 0b0000000000111111
        self.set_memory(plus(self.get_register(base), sext(offset6, 6)),
                        self.get_register(src))

    def NOT(self, instruction):
        dst = (instruction & 0b0000111000000000) >> 9
        src = (instruction & 0b0000000111000000) >> 6
        self.set_register(dst, ~self.get_register(src))
        self.set_nzp(dst)

    def LDI(self, instruction):
        dst = (instruction & 0b0000111000000000) >> 9
        pc_offset9 = instruction & 0b0000000111111111
        location = plus(self.get_pc(), sext(pc_offset9, 9))
        self.set_register(dst, self.get_memory(self.get_memory(location)))
        self.set_nzp(dst)

    def STI(self, instruction):
        src = (instruction & 0b0000111000000000) >> 9
        pc_offset9 = instruction & 0b0000000111111111
        memory = self.get_memory(plus(self.get_pc(), sext(pc_offset9, 9)))
        self.set_memory(memory, self.get_register(src))

    def RESERVED(self, instruction):
        raise ValueError("attempt to execute reserved instruction %s (%s)" %
                         (self.mnemonic[(instruction >> 12) & 0xF], lc_hex(instruction)))

    def LEA(self, instruction):
        dst = (instruction & 0b0000111000000000) >> 9
        pc_offset9 = instruction & 0b0000000111111111
        self.set_register(dst, plus(self.get_pc(), sext(pc_offset9, 9)))
        self.set_nzp(dst)

    def TRAP(self, instruction):
        vector = instruction & 0b0000000011111111
        self.set_register(7, self.get_pc())
        if vector not in self.traps:
            raise ValueError("invalid TRAP vector: %s" % lc_hex(vector))
        self.traps[vector]()

    def BR(self, instruction):
        nzp = (instruction & 0b0000111000000000) >> 9
        pc_offset9 = instruction & 0b0000000111111111
        if nzp & self.get_nzp():
            self.set_pc(plus(self.get_pc(), sext(pc_offset9, 9)))

    def LD(self, instruction):
        dst = (instruction & 0b0000111000000000) >> 9
        pc_offset9 = instruction & 0b0000000111111111
        self.set_register(dst, self.get_memory(plus(self.get_pc(), sext(pc_offset9, 9))))
        self.set_nzp(dst)

    def LDR(self, instruction):
        dst =  (instruction & 0b0000111000000000) >> 9
        base = (instruction & 0b0000000111000000) >> 6
        offset6 = instruction & 0b0000000000111111
        location = plus(self.get_register(base), sext(offset6, 6))
        self.set_register(dst, self.get_memory(location))
        self.set_nzp(dst)

    def ST(self, instruction):
        src = (instruction & 0b0000111000000000) >> 9
        pc_offset9 = instruction & 0b0000000111111111
        self.set_memory(plus(self.get_pc(), sext(pc_offset9, 9)), self.get_register(src))

    def JMP(self, instruction):
        base = (instruction & 0b0000000111000000) >> 6
        self.set_pc(self.get_register(base))

    def JSR(self, instruction):
        self.set_register(7, self.get_pc())
        if (instruction & 0b0000100000000000): # JSR
            pc_offset11 = instruction & 0b0000011111111111
            self.set_pc(plus(self.get_pc(), sext(pc_offset11, 11)))
        else:                                  # JSRR
            base = (instruction & 0b0000000111000000) >> 6
            self.set_pc(self.get_register(base))

    def ADD(self, instruction):
        dst = (instruction & 0b0000111000000000) >> 9
        sr1 = (instruction & 0b0000000111000000) >> 6
        if (instruction & 0b0000000000100000) == 0:
            sr2 = instruction & 0b0000000000000111
            self.set_register(dst, plus(self.get_register(sr1),
                                        self.get_register(sr2)))
        else:
            imm5 = instruction & 0b0000000000011111
            self.set_register(dst, plus(self.get_register(sr1), sext(imm5, 5)))
        self.set_nzp(dst)

    def AND(self, instruction):
        dst = (instruction & 0b0000111000000000) >> 9
        sr1 = (instruction & 0b0000000111000000) >> 6
        if (instruction & 0b0000000000100000) == 0:
            sr2 = instruction & 0b0000000000000111
            self.set_register(dst, self.get_register(sr1) & self.get_register(sr2))
        else:
            imm5 = instruction & 0b0000000000011111
            self.set_register(dst, self.get_register(sr1) & sext(imm5, 5))
        self.set_nzp(dst)

    ## TRAP service routines; R7 already holds the return address.

    def putc(self, value):
        self.console.write(bytes([value & 0xFF]))

    def puts(self, string):
        self.console.write(string.encode("latin-1"))

    def GETC(self):
        self.set_register(0, self.console.getc())
        self.set_nzp(0)

    def OUT(self):
        self.putc(self.get_register(0))
        self.console.flush()

    def PUTS(self):
        location = self.get_register(0)
        memory = self.memory[location]
        while memory != 0:
            self.putc(memory)
            location = plus(location, 1)
            memory = self.memory[location]
        self.console.flush()

    def IN(self):
        self.puts(IN_PROMPT)
        self.console.flush()
        char = self.console.getc()
        self.putc(char)
        self.console.flush()
        self.set_register(0, char)
        self.set_nzp(0)

    def PUTSP(self):
        location = self.get_register(0)
        memory = self.memory[location]
        while memory != 0:
            self.putc(memory & 0b0000000011111111)
            if memory & 0b1111111100000000:
                self.putc((memory & 0b1111111100000000) >> 8)
            location = plus(location, 1)
            memory = self.memory[location]
        self.console.flush()

    def HALT(self):
        self.puts(HALT_MESSAGE)
        self.console.flush()
        self.cont = False
