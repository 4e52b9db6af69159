from casefeed.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    CaseFeedError,
    InternalError,
    NotFoundError,
    SourceUnavailableError,
    ValidationError,
    field_errors,
)


def test_casefeed_error_to_dict():
    err = CaseFeedError(code="test_error", message="Something broke", status=500)
    d = err.to_dict()
    assert d["error"]["code"] == "test_error"
    assert d["error"]["message"] == "Something broke"
    assert d["error"]["status"] == 500
    assert "details" not in d["error"]


def test_casefeed_error_with_details():
    err = CaseFeedError(code="x", message="y", status=400, details={"hint": "try again"})
    assert err.to_dict()["error"]["details"]["hint"] == "try again"


def test_authentication_error_defaults():
    err = AuthenticationError()
    assert err.status == 401
    assert err.code == "authentication_required"


def test_authorization_error_defaults():
    err = AuthorizationError()
    assert err.status == 403
    assert err.code == "insufficient_permissions"


def test_not_found_error_defaults():
    assert NotFoundError().status == 404


def test_internal_error_defaults():
    err = InternalError()
    assert err.status == 500
    assert err.code == "internal_error"


def test_validation_error_carries_fields():
    err = ValidationError(fields={"limit": ["too big"]})
    assert err.status == 400
    assert err.fields == {"limit": ["too big"]}
    assert err.to_dict()["error"]["details"] == {"fields": {"limit": ["too big"]}}


def test_source_unavailable_names_source():
    err = SourceUnavailableError("rental")
    assert err.status == 503
    assert err.source == "rental"
    assert "rental" in err.message


def test_field_errors_strips_parameter_source():
    errors = [
        {"loc": ("query", "page"), "msg": "must be positive"},
        {"loc": ("query", "page"), "msg": "not an int"},
        {"loc": ("end_date",), "msg": "before start"},
        {"loc": ("query",), "msg": "bad query"},
    ]
    assert field_errors(errors) == {
        "page": ["must be positive", "not an int"],
        "end_date": ["before start"],
        "query": ["bad query"],
    }
