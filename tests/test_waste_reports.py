import pytest

from wastewise.errors import ClassificationError, InvalidUploadError, NotFoundError, StorageError
from wastewise.services.classification import GeminiClassifier
from wastewise.services.waste_reports import WasteReportService

from conftest import FakeModel, ORGANIC_RESPONSE


@pytest.fixture
def service(supabase):
    return WasteReportService(supabase, GeminiClassifier(model=FakeModel(text=ORGANIC_RESPONSE)))


def test_submit_runs_full_pipeline(service, supabase, alice):
    report = service.submit(alice, 'banana.JPG', b'jpeg-bytes', 'image/jpeg')

    (bucket, path), = supabase.storage.objects.keys()
    assert bucket == 'waste-images'
    assert path.startswith(f'{alice.id}/') and path.endswith('.jpg')

    assert report.classification == 'Organic'
    assert report.confidence_score == 0.82
    assert report.recommendations == ['Compost it', 'Keep it dry', 'Use a green bin']
    assert report.carbon_footprint == 0.8
    assert report.image_url.endswith(path)

    (footprint,) = supabase.rows('carbon_footprints')
    assert footprint['waste_report_id'] == report.id
    assert footprint['carbon_impact'] == 0.8
    assert len(footprint['reduction_suggestions']) == 3

    (points,) = supabase.rows('user_points')
    assert (points['points'], points['level']) == (100, 1)
    (transaction,) = supabase.rows('point_transactions')
    assert transaction['reason'] == f'waste_report: {report.id}'


def test_unknown_category_still_recorded(supabase, alice):
    service = WasteReportService(supabase, GeminiClassifier(model=FakeModel(text="I am not sure what this is")))

    report = service.submit(alice, 'x.png', b'png', 'image/png')

    assert report.classification == 'Unknown'
    assert report.confidence_score == 0
    assert report.carbon_footprint == 1.0
    assert supabase.rows('carbon_footprints')[0]['reduction_suggestions'] == []


def test_non_image_rejected_before_upload(service, supabase, alice):
    with pytest.raises(InvalidUploadError):
        service.submit(alice, 'notes.txt', b'text', 'text/plain')
    assert supabase.storage.objects == {}


def test_upload_failure(service, supabase, alice):
    supabase.storage.fail_upload = True
    with pytest.raises(StorageError):
        service.submit(alice, 'a.jpg', b'img', 'image/jpeg')
    assert supabase.rows('waste_reports') == []


def test_classification_failure_removes_upload(supabase, alice):
    service = WasteReportService(supabase, GeminiClassifier(model=FakeModel(error=RuntimeError("503"))))

    with pytest.raises(ClassificationError):
        service.submit(alice, 'a.jpg', b'img', 'image/jpeg')

    assert supabase.storage.objects == {}
    assert supabase.rows('waste_reports') == []


def test_award_failure_rolls_back_report(service, supabase, alice):
    supabase.failures[('point_transactions', 'insert')] = RuntimeError("db down")

    with pytest.raises(RuntimeError):
        service.submit(alice, 'a.jpg', b'img', 'image/jpeg')

    assert supabase.storage.objects == {}
    assert supabase.rows('waste_reports') == []
    assert supabase.rows('carbon_footprints') == []
    assert supabase.rows('user_points') == []


def test_list_reports_newest_first(service, supabase, alice, bob):
    first = service.submit(alice, 'a.jpg', b'1', 'image/jpeg')
    second = service.submit(alice, 'b.jpg', b'2', 'image/jpeg')
    service.submit(bob, 'c.jpg', b'3', 'image/jpeg')

    assert [r.id for r in service.list_reports(alice.id)] == [second.id, first.id]


def test_only_owner_can_delete(service, supabase, alice, bob):
    report = service.submit(alice, 'a.jpg', b'1', 'image/jpeg')

    with pytest.raises(NotFoundError):
        service.delete_report(bob, report.id)
    assert len(supabase.rows('waste_reports')) == 1

    service.delete_report(alice, report.id)
    assert supabase.rows('waste_reports') == []
