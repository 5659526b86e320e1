"""Runtime safety layer — sandbox confinement and tool I/O primitives."""
