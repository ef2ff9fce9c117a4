import pytest

from ..exceptions import InvalidKeyError
from ..lookup import TypeLookupService
from .testing import ArticleViewModel, PageViewModel, TopicViewModel


class TestTypeLookupService:
    def test_convention(self):
        lookup = TypeLookupService([PageViewModel, ArticleViewModel])
        assert lookup.lookup("Page") is PageViewModel
        assert lookup.lookup("Article") is ArticleViewModel
        assert "Page" in lookup
        assert "Comment" not in lookup

    def test_default_type(self):
        assert TypeLookupService().lookup("Page") is object
        assert TypeLookupService(default_type=TopicViewModel).lookup("Page") is TopicViewModel

    def test_register_as(self):
        lookup = TypeLookupService()
        assert lookup.register_as("Comment", PageViewModel) is PageViewModel
        assert lookup.lookup("Comment") is PageViewModel

    def test_suffix(self):
        class PageModel:
            pass

        lookup = TypeLookupService([PageModel], suffix="Model")
        assert lookup.lookup("Page") is PageModel

    @pytest.mark.parametrize("name", ["Page", "ViewModel"])
    def test_convention_violation(self, name):
        type_ = type(name, (), {})
        with pytest.raises(ValueError):
            TypeLookupService([type_])

    def test_invalid_content_type(self):
        with pytest.raises(InvalidKeyError):
            TypeLookupService().register_as("Not a key", PageViewModel)
