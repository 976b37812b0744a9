from conftest import make_pdf
from models.annotation_models import AnnotationSnapshot, HighlightAnnotation
from services.export_service import ExportService
from utils.export_worker import ExportWorker


def test_worker_emits_result(qapp):
    snapshot = AnnotationSnapshot(highlights=(HighlightAnnotation(id="h1", x=0, y=0, width=50, height=20, page=1),))
    worker = ExportWorker(ExportService(), make_pdf(), snapshot)
    results, errors = [], []
    worker.result_ready.connect(results.append)
    worker.error_occurred.connect(errors.append)

    worker.run()

    assert errors == []
    assert len(results) == 1
    assert results[0].data.startswith(b"%PDF")


def test_worker_reports_failure(qapp):
    worker = ExportWorker(ExportService(), b"not a pdf", AnnotationSnapshot())
    results, errors = [], []
    worker.result_ready.connect(results.append)
    worker.error_occurred.connect(errors.append)

    worker.run()

    assert results == []
    assert len(errors) == 1
