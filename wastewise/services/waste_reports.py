"""
Waste report pipeline
upload -> classify -> carbon impact -> store report and footprint -> award points
"""

import logging
from typing import List, Optional

from wastewise import config
from wastewise.errors import InvalidUploadError, NotFoundError
from wastewise.schemas import UserSession, WasteReport
from wastewise.services.carbon import carbon_impact
from wastewise.services.classification import GeminiClassifier
from wastewise.services.gamification import PointsAccountant
from wastewise.storage import remove_file, unique_filename, upload_file

logger = logging.getLogger(__name__)


class WasteReportService:
    def __init__(self, client, classifier: GeminiClassifier, accountant: Optional[PointsAccountant] = None):
        self.client = client
        self.classifier = classifier
        self.accountant = accountant or PointsAccountant(client)
        self.bucket_name = config.WASTE_IMAGES_BUCKET

    def submit(self, user: UserSession, filename: Optional[str], content: bytes, content_type: Optional[str]) -> WasteReport:
        """Run the whole pipeline for one uploaded photo.

        Steps that already reached the store are undone if a later step
        fails: the uploaded image is removed, and a stored report is
        deleted together with its footprint row.
        """
        if not content_type or not content_type.startswith('image/'):
            raise InvalidUploadError("File must be an image")

        path = f"{user.id}/{unique_filename(filename)}"
        public_url = upload_file(self.client, self.bucket_name, path, content, content_type)

        report_id = None
        try:
            classification = self.classifier.classify(content, content_type)
            footprint = carbon_impact(classification.classification)

            response = self.client.table('waste_reports').insert({
                'user_id': user.id,
                'image_url': public_url,
                'classification': classification.classification,
                'confidence_score': classification.confidence,
                'recommendations': classification.recommendations,
                'status': 'completed',
                'carbon_footprint': footprint.impact
            }).execute()
            if not response.data:
                raise RuntimeError("Failed to insert waste report into database")
            report = WasteReport(**response.data[0])
            report_id = report.id

            self.client.table('carbon_footprints').insert({
                'user_id': user.id,
                'waste_report_id': report.id,
                'carbon_impact': footprint.impact,
                'reduction_suggestions': footprint.suggestions
            }).execute()

            self.accountant.award_points(user.id, 'waste_report', report.id)
        except Exception:
            self._compensate(path, report_id)
            raise

        logger.info("Waste report %s stored for %s as %s", report.id, user.id, report.classification)
        return report

    def _compensate(self, path: str, report_id: Optional[str]):
        try:
            if report_id:
                self.client.table('carbon_footprints').delete().eq('waste_report_id', report_id).execute()
                self.client.table('waste_reports').delete().eq('id', report_id).execute()
            remove_file(self.client, self.bucket_name, path)
        except Exception as e:
            logger.error("Cleanup after failed waste report left data behind (%s, report %s): %s",
                         path, report_id, e)

    def list_reports(self, user_id: str) -> List[WasteReport]:
        response = self.client.table('waste_reports').select('*') \
            .eq('user_id', user_id).order('created_at', desc=True).execute()
        return [WasteReport(**row) for row in response.data or []]

    def delete_report(self, user: UserSession, report_id: str):
        """Only the owner may delete a report"""
        response = self.client.table('waste_reports').select('id, user_id').eq('id', report_id).limit(1).execute()
        if not response.data or str(response.data[0].get('user_id')) != user.id:
            raise NotFoundError("Waste report not found")

        self.client.table('waste_reports').delete().eq('id', report_id).eq('user_id', user.id).execute()
        logger.info("Waste report %s deleted by %s", report_id, user.id)
