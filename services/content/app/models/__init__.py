from app.models.custom_field import PostCustomFieldValue
from app.models.module_instance import ModuleInstance
from app.models.post import Post
from app.models.post_module import PostModule
from app.models.post_revision import PostRevision
from app.models.taxonomy import PostTaxonomyTerm, Taxonomy, TaxonomyTerm

__all__ = [
    "Post",
    "ModuleInstance",
    "PostModule",
    "PostCustomFieldValue",
    "Taxonomy",
    "TaxonomyTerm",
    "PostTaxonomyTerm",
    "PostRevision",
]
