from lexcanada.data.seed import CATEGORIES, PLANS, PROCEDURES, TEMPLATES, seed_all
from lexcanada.models import CourtProcedure, CourtProcedureStep, DocumentTemplate, SubscriptionPlan


class TestSeed:
    def test_seeds_everything(self, db):
        results = seed_all(db)
        db.commit()

        assert results == {
            "plans": len(PLANS),
            "templates": len(TEMPLATES),
            "court-procedures": len(CATEGORIES) + len(PROCEDURES),
        }
        assert db.query(CourtProcedureStep).count() == sum(len(p["steps"]) for p in PROCEDURES)

    def test_second_run_creates_nothing(self, db):
        seed_all(db)
        db.commit()

        results = seed_all(db)
        db.commit()

        assert results == {"plans": 0, "templates": 0, "court-procedures": 0}
        assert db.query(SubscriptionPlan).count() == len(PLANS)
        assert db.query(DocumentTemplate).count() == len(TEMPLATES)
        assert db.query(CourtProcedureStep).count() == sum(len(p["steps"]) for p in PROCEDURES)

    def test_rerun_updates_existing_rows(self, db):
        seed_all(db, only=["plans"])
        db.commit()
        plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.tier == "basic").one()
        plan.price = 1.0
        db.commit()

        seed_all(db, only=["plans"])
        db.commit()

        assert db.query(SubscriptionPlan).filter(SubscriptionPlan.tier == "basic").one().price == 14.99

    def test_only_selected(self, db):
        assert seed_all(db, only=["templates"]) == {"templates": len(TEMPLATES)}
        assert db.query(CourtProcedure).count() == 0

    def test_templates_have_placeholders_for_every_field(self):
        for template in TEMPLATES:
            for field in template["fields"]:
                assert "{{" + field["name"] + "}}" in template["template_content"], (template["title"], field["name"])
