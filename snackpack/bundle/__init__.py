from .assembler import BundleAssembler
from .compiler import CompiledModule, Compiler, ModuleCompiler
from .writer import write_result

__all__ = [
    "BundleAssembler",
    "CompiledModule",
    "Compiler",
    "ModuleCompiler",
    "write_result",
]
