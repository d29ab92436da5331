from .exporter import ExportError, ExportFormat, export_records
from .frame_preprocess import FramePreprocessor, NormalizedField
from .geometry import GeometrySet, UnsupportedResolution, derive
from .text_recognizer import CRNNRecognizer, RecognitionError, RecognizerLoadError

__all__ = [
    "CRNNRecognizer",
    "ExportError",
    "ExportFormat",
    "FramePreprocessor",
    "GeometrySet",
    "NormalizedField",
    "RecognitionError",
    "RecognizerLoadError",
    "UnsupportedResolution",
    "derive",
    "export_records",
]
