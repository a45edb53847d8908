"""core/ -- Kernel: configuration, error taxonomy, timing instrumentation.

Layer rule: core/ imports only stdlib + third-party libraries. It does NOT
import from auth/ or db/; both of those import from core/.
"""
