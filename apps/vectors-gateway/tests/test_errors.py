"""Tests for the error taxonomy."""

from vectors_gateway.models.results import ErrorInfo, IngestResult, OperationStatus
from vectors_gateway.utils.errors import (
    DocumentVectorizationError,
    EmbeddingMismatchError,
    MetadataStoreError,
    OwnershipConflictError,
    ValidationError,
    VectorizationException,
)


def test_to_dict_envelope():
    exc = VectorizationException("boom", status_code=418, code="TEAPOT", details={"a": 1})

    assert exc.to_dict() == {
        "error": {"message": "boom", "code": "TEAPOT", "status_code": 418, "details": {"a": 1}}
    }


def test_default_code_is_class_name():
    assert VectorizationException("x").code == "VectorizationException"


def test_validation_error_carries_field_errors():
    exc = ValidationError("bad input", errors={"query": "required"})

    assert exc.status_code == 422
    assert exc.details == {"validation_errors": {"query": "required"}}


def test_ownership_conflict_is_a_409_with_document_key():
    exc = OwnershipConflictError(1, 10, details={"user_id": 200})

    assert exc.status_code == 409
    assert exc.code == "OWNERSHIP_CONFLICT"
    assert exc.details == {"user_id": 200, "document_id": 1, "knowledge_base_id": 10}

def test_document_error_wraps_cause():
    cause = EmbeddingMismatchError(
        "Embedding mismatch: expected 3 embeddings, got 2", expected=3, actual=2
    )

    exc = DocumentVectorizationError(
        step="validate_embeddings", document_id=7, knowledge_base_id=9, user_id=1, cause=cause
    )

    assert exc.message == (
        "Failed to process document 7 (knowledge base 9) at step 'validate_embeddings': "
        "Embedding mismatch: expected 3 embeddings, got 2"
    )
    assert exc.status_code == 502
    assert exc.step == "validate_embeddings"
    assert exc.cause is cause
    assert exc.details == {
        "step": "validate_embeddings",
        "document_id": 7,
        "knowledge_base_id": 9,
        "user_id": 1,
        "cause": "EMBEDDING_MISMATCH",
        "expected": 3,
        "actual": 2,
    }


def test_document_error_with_plain_exception():
    exc = DocumentVectorizationError(
        step="store_vectors", document_id=1, knowledge_base_id=2, cause=RuntimeError("timeout")
    )

    assert exc.status_code == 500
    assert exc.details["cause"] == "RuntimeError"
    assert exc.message.endswith("at step 'store_vectors': timeout")


def test_error_info_from_exception():
    info = ErrorInfo.from_exception(MetadataStoreError("db down"), step="mark_vectorized")

    assert info.code == "METADATA_STORE_ERROR"
    assert info.step == "mark_vectorized"

    plain = ErrorInfo.from_exception(KeyError())
    assert plain.code == "KeyError"
    assert plain.message == "KeyError"


def test_failed_result_reraises_original_error():
    error = DocumentVectorizationError(step="embed", document_id=1, knowledge_base_id=2)
    result = IngestResult.failed(error, user_id=3)

    assert result.status == OperationStatus.FAILED
    assert result.error.step == "embed"
    try:
        result.raise_for_status()
    except DocumentVectorizationError as raised:
        assert raised is error
    else:
        raise AssertionError("raise_for_status did not raise")
