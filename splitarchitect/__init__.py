# mypy: ignore-errors
"""Core SplitArchitect package."""

__all__ = [
    "Split",
    "SplitSystem",
    "CompatibilityClass",
    "SplitSystemConfig",
    "SearchBudget",
    "SplitSystemPipeline",
    "analyze",
    "decompose",
    "classify",
    "find_cycle",
    "compute_fit",
    "write_split_newick",
    "parse_split_newick",
]


def __getattr__(name):
    if name == "Split":
        from .elements.split import Split

        return Split
    if name in {"SplitSystem", "CompatibilityClass"}:
        from .elements.split_system import SplitSystem, CompatibilityClass

        return locals()[name]
    if name in {"SplitSystemConfig", "SearchBudget"}:
        from .config import SplitSystemConfig, SearchBudget

        return locals()[name]
    if name in {"SplitSystemPipeline", "analyze"}:
        from .pipeline import SplitSystemPipeline, analyze

        return locals()[name]
    if name == "decompose":
        from .decomposition.split_decomposition import decompose

        return decompose
    if name == "classify":
        from .compatibility.classify import classify

        return classify
    if name == "find_cycle":
        from .leaforder.circular_ordering import find_cycle

        return find_cycle
    if name == "compute_fit":
        from .fit import compute_fit

        return compute_fit
    if name in {"write_split_newick", "parse_split_newick"}:
        from .parser.split_newick import write_split_newick, parse_split_newick

        return locals()[name]
    raise AttributeError(name)
