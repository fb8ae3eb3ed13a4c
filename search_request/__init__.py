"""Build and refine search API request trees."""

__version__ = "0.3.0"

from search_request.query.nodes import SearchRequest, node_from_dict  # noqa: E402
from search_request.query.refinement import add_refinement  # noqa: E402
from search_request.query.refinements import Refinement, add_refinements  # noqa: E402

__all__ = [
    "Refinement",
    "SearchRequest",
    "__version__",
    "add_refinement",
    "add_refinements",
    "node_from_dict",
]
