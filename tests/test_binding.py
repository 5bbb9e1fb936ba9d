"""Tests for perch.binding — request model and action argument binding."""

from dataclasses import dataclass, field

from perch.binding import (
    build_action_kwargs,
    build_request_model,
    extract_dataclass,
    is_extractable_dataclass,
)
from perch.config import AppConfig
from perch.http.forms import FormData
from perch.http.query import QueryParams
from perch.http.request import Request
from perch.results import ViewResult


@dataclass(frozen=True)
class SearchParams:
    q: str = ""
    page: int = 1
    exact: bool = False
    tags: list[str] = field(default_factory=list)


def _get(query: str = "") -> Request:
    return Request({"REQUEST_METHOD": "GET"}, query_params=QueryParams(query))


def _post(**fields: str) -> Request:
    return Request(
        {"REQUEST_METHOD": "POST"},
        form_data=FormData({key: [value] for key, value in fields.items()}),
    )


class TestExtraction:
    def test_user_dataclass_is_extractable(self) -> None:
        assert is_extractable_dataclass(SearchParams) is True

    def test_framework_dataclasses_excluded(self) -> None:
        assert is_extractable_dataclass(Request) is False
        assert is_extractable_dataclass(ViewResult) is False

    def test_non_dataclass(self) -> None:
        assert is_extractable_dataclass(str) is False
        assert is_extractable_dataclass(SearchParams(q="x")) is False

    def test_converts_types(self) -> None:
        params = extract_dataclass(SearchParams, {"q": " python ", "page": "3", "exact": "on"})
        assert params == SearchParams(q="python", page=3, exact=True)

    def test_missing_keys_use_defaults(self) -> None:
        assert extract_dataclass(SearchParams, {}) == SearchParams()

    def test_failed_conversion_keeps_raw(self) -> None:
        assert extract_dataclass(SearchParams, {"page": "two"}).page == "two"


class TestRequestModel:
    def test_post_binds_form(self) -> None:
        model = build_request_model(_post(name="Ada", age="36"), AppConfig())
        assert model is not None
        assert model.name == "Ada"
        assert model.age == "36"

    def test_get_has_no_model(self) -> None:
        assert build_request_model(_get("name=Ada"), AppConfig()) is None

    def test_get_binds_query_when_enabled(self) -> None:
        model = build_request_model(_get("name=Ada"), AppConfig(bind_query_model=True))
        assert model is not None
        assert model.name == "Ada"

    def test_empty_post(self) -> None:
        model = build_request_model(_post(), AppConfig())
        assert model is not None
        assert vars(model) == {}


class TestActionKwargs:
    def test_no_parameters(self) -> None:
        def index():
            return None

        assert build_action_kwargs(index, _get(), None) == {}

    def test_model_goes_to_first_parameter(self) -> None:
        def save(model, extra=None):
            return None

        sentinel = object()
        assert build_action_kwargs(save, _get(), sentinel) == {"model": sentinel}

    def test_model_replaces_parameter_default(self) -> None:
        def index(page=1):
            return page

        assert build_action_kwargs(index, _get(), None) == {"page": None}

    def test_request_by_name_and_annotation(self) -> None:
        def by_name(request):
            return None

        def by_annotation(req: Request, model):
            return None

        request = _get()
        assert build_action_kwargs(by_name, request, None) == {"request": request}
        assert build_action_kwargs(by_annotation, request, "m") == {"req": request, "model": "m"}

    def test_dataclass_from_query(self) -> None:
        def search(params: SearchParams):
            return None

        kwargs = build_action_kwargs(search, _get("q=perch&page=2"), None)
        assert kwargs == {"params": SearchParams(q="perch", page=2)}

    def test_dataclass_from_form_on_post(self) -> None:
        def search(params: SearchParams, model):
            return None

        request = _post(q="form")
        kwargs = build_action_kwargs(search, request, "m")
        assert kwargs["params"] == SearchParams(q="form")
        assert kwargs["model"] == "m"

    def test_bound_method(self) -> None:
        class Home:
            def index(self, model):
                return model

        assert build_action_kwargs(Home().index, _get(), 5) == {"model": 5}
