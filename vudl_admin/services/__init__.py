"""HTTP adapters for the repository store and the search index."""

from .fedora import FedoraRepository
from .solr import SolrIndex

__all__ = ["FedoraRepository", "SolrIndex"]
