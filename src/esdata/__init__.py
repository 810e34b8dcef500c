"""esdata — Object mapping and operation templates for Elasticsearch.

Maps pydantic models to Elasticsearch documents and back, shapes document,
search and bulk requests for the official ``elasticsearch`` client, and
translates transport errors into a single domain error hierarchy.

Quick start::

    from elasticsearch import Elasticsearch
    from esdata import ElasticsearchTemplate

    template = ElasticsearchTemplate(Elasticsearch("http://localhost:9200"))
    book = template.save(Book(title="Dune"))
    hits = template.search(template.match_all_query(), Book)
"""

from esdata.core.exceptions import BulkFailureError, EsDataError
from esdata.core.template import ElasticsearchTemplate
from esdata.mapping.converter import EntityConverter
from esdata.models.document import IndexCoordinates, IndexedObjectInformation, MultiGetItem
from esdata.models.query import IndexQuery, NativeQuery, Pageable, RefreshPolicy, StringQuery
from esdata.models.response import SearchHits, SearchScrollHits

__version__ = "0.1.0"

__all__ = [
    "BulkFailureError",
    "ElasticsearchTemplate",
    "EntityConverter",
    "EsDataError",
    "IndexCoordinates",
    "IndexQuery",
    "IndexedObjectInformation",
    "MultiGetItem",
    "NativeQuery",
    "Pageable",
    "RefreshPolicy",
    "SearchHits",
    "SearchScrollHits",
    "StringQuery",
    "__version__",
]
