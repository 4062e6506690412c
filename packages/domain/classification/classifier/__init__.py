from packages.domain.classification.classifier.base import (
    Classifier,
    ClassifierError,
    ClassifierTimeoutError,
)
from packages.domain.classification.classifier.factory import create_classifier

__all__ = [
    'Classifier',
    'ClassifierError',
    'ClassifierTimeoutError',
    'create_classifier',
]
