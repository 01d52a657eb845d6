"""ViewModel package for run state shown to the operator.

Call context:
    ``bulkctl/app/main.py`` and ``bulkctl/app/ui_bridge.py`` bind these
    viewmodels as progress and log sinks for bulk runs.

Dependencies:
    Modules in this package depend on domain types only. I/O adapters and
    use-case orchestration remain outside.

Responsibilities:
    - Accept sink calls from the worker thread running a bulk job.
    - Hand queued events to the UI thread in production order.
    - Hold editable settings with coercion and validation.
"""
