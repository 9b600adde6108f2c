"""
Static Analysis Package.

Per-file checks run over the front end's symbol table and call graph.

Modules:
    - ``catalog``: Recognising guarded-section classes.
    - ``scanner``: Classifying reads, writes, instantiations and guarded parameters.
    - ``liveness``: Deciding which callable units can run.
    - ``reachability``: Searching caller edges for the lease invocation.
    - ``uniqueness``: Reporting repeated instantiation of a guarded type.
    - ``diagnostics``: Violation values and their text/JSON rendering.
"""
