from metakernel import MetaKernel

from .lc3 import LC3, lc_hex

class KernelConsole(object):
    """
    Console for running inside the kernel. Output is sent to the
    notebook, and GETC/IN ask the notebook for a line of input which is
    then handed out one character at a time.
    """
    def __init__(self, kernel):
        self.kernel = kernel
        self.char_buffer = []
        self.output = []

    def key_available(self):
        # Never prompt from a keyboard poll; only report what is buffered
        return len(self.char_buffer) > 0

    def getc(self):
        ### No prompt for input:
        if len(self.char_buffer) == 0:
            self.flush()
            data = self.kernel.raw_input()
            data = data.replace("\\n", "\n")
            if len(data) == 0:
                self.char_buffer = [10] # just the Enter key
            else:
                self.char_buffer = [ord(char) & 0xFF for char in data]
        return self.char_buffer.pop(0)

    def write(self, data):
        self.output.append(data.decode("latin-1"))

    def flush(self):
        if self.output:
            self.kernel.Print("".join(self.output), end="")
            self.output = []

class LC3Kernel(MetaKernel):
    implementation = 'lc3vm'
    implementation_version = '1.0'
    language = 'LC3'
    language_version = '0.1'
    banner = "LC3 virtual machine - runs LC-3 object images"
    language_info = {
        'name': 'lc3',
        'mimetype': 'text/plain',
        'file_extension': '.obj',
    }

    def __init__(self, *args, **kwargs):
        super(LC3Kernel, self).__init__(*args, **kwargs)
        self.lc3 = LC3(KernelConsole(self), kernel=self)

    def get_usage(self):
        return """This is the LC3 virtual machine Jupyter kernel.

Enter the paths of one or more LC-3 object (.obj) images, separated by
spaces or newlines. The machine is reset, the images are loaded in order
(later images overwrite earlier ones) and the program runs from x3000 until
it HALTs.

GETC and IN read from an input prompt; the keyboard status register (xFE00)
only reports characters left over from earlier input.
"""

    def execute_images(self, filenames):
        self.lc3.reset()
        self.lc3.console.char_buffer = []
        for filename in filenames:
            try:
                self.lc3.load_image(filename)
            except (OSError, ValueError) as exc:
                self.Error("failed to load image: %s (%s)" % (filename, exc))
                return False
        try:
            self.lc3.run()
        except ValueError as exc:
            self.lc3.console.flush()
            self.Error("\nRuntime error:\n    memory %s\n%s" %
                       (lc_hex(self.lc3.get_pc() - 1), str(exc)))
            return False
        except KeyboardInterrupt:
            self.lc3.console.flush()
            self.Error("Keyboard Interrupt!")
            return False
        self.Print("=" * 60)
        self.Print("Computation completed")
        self.Print("=" * 60)
        self.Print("Instructions:", self.lc3.instruction_count)
        self.lc3.dump_registers()
        return True

    def do_execute_file(self, filename):
        self.execute_images([filename])

    def do_execute_direct(self, code):
        filenames = code.split()
        if not filenames:
            return
        self.execute_images(filenames)

    def repr(self, data):
        return repr(data)

if __name__ == '__main__':
    LC3Kernel.run_as_main()
