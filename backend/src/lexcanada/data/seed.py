"""
Reference data: subscription plans, starter document templates and the
court procedure catalogue.

Each ``seed_*`` function upserts on the row's natural key (plan tier,
template title and language, category and procedure slug) so it can be
run repeatedly.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from lexcanada.models import (
    CourtProcedure,
    CourtProcedureCategory,
    CourtProcedureStep,
    DocumentTemplate,
    SubscriptionPlan,
)

logger = logging.getLogger(__name__)

PLANS: List[Dict[str, Any]] = [
    {
        "tier": "basic",
        "name": "Basic Plan",
        "description": "Essential legal tools for individuals and small businesses",
        "price": 14.99,
        "stripe_price_id": "price_basic_monthly",
        "interval": "month",
        "features": {"documentLimit": 10, "researchLimit": 20, "contractLimit": 5, "chatLimit": 50},
        "trial_days": 7,
        "is_popular": False,
    },
    {
        "tier": "professional",
        "name": "Professional Plan",
        "description": "Comprehensive legal solutions for businesses",
        "price": 29.99,
        "stripe_price_id": "price_professional_monthly",
        "interval": "month",
        "features": {"documentLimit": 50, "researchLimit": 100, "contractLimit": 20, "chatLimit": 200},
        "trial_days": 7,
        "is_popular": True,
    },
    {
        "tier": "enterprise",
        "name": "Enterprise Plan",
        "description": "Full legal platform for large organizations",
        "price": 79.99,
        "stripe_price_id": "price_enterprise_monthly",
        "interval": "month",
        "features": {"documentLimit": -1, "researchLimit": -1, "contractLimit": -1, "chatLimit": -1},
        "trial_days": 7,
        "is_popular": False,
    },
]

TEMPLATES: List[Dict[str, Any]] = [
    {
        "template_type": "civil",
        "subcategory": "demand",
        "title": "Demand Letter",
        "description": "Formal demand for payment of a debt before starting a court claim",
        "language": "en",
        "jurisdiction": "Canada",
        "template_content": (
            "# Demand Letter\n\n"
            "{{date}}\n\n"
            "To: {{recipientName}}\n{{recipientAddress}}\n\n"
            "## Re: Outstanding amount of ${{amountOwing}}\n\n"
            "Dear {{recipientName}},\n\n"
            "I am writing to demand payment of ${{amountOwing}} owed to me for {{reason}}.\n\n"
            "Please pay the full amount by {{paymentDeadline}}. If payment is not received by that date, "
            "I intend to start a claim in Small Claims Court without further notice.\n\n"
            "Sincerely,\n\n{{senderName}}\n{{senderAddress}}\n"
        ),
        "fields": [
            {"name": "date", "label": "Date", "type": "date", "required": True},
            {"name": "recipientName", "label": "Recipient Name", "type": "text", "required": True},
            {"name": "recipientAddress", "label": "Recipient Address", "type": "textarea", "required": True},
            {"name": "amountOwing", "label": "Amount Owing", "type": "number", "required": True},
            {"name": "reason", "label": "Reason for Debt", "type": "textarea", "required": True},
            {"name": "paymentDeadline", "label": "Payment Deadline", "type": "date", "required": True},
            {"name": "senderName", "label": "Your Name", "type": "text", "required": True},
            {"name": "senderAddress", "label": "Your Address", "type": "textarea", "required": False},
        ],
    },
    {
        "template_type": "business",
        "subcategory": "confidentiality",
        "title": "Mutual Non-Disclosure Agreement",
        "description": "Two-way confidentiality agreement for business discussions",
        "language": "en",
        "jurisdiction": "Canada",
        "template_content": (
            "# Mutual Non-Disclosure Agreement\n\n"
            "This Agreement is made on {{effectiveDate}} between {{firstPartyName}} and {{secondPartyName}}.\n\n"
            "## 1. Purpose\n\n"
            "The parties wish to exchange confidential information in connection with {{purpose}}.\n\n"
            "## 2. Obligations\n\n"
            "- Each party will keep the other party's confidential information secret.\n"
            "- Confidential information will be used only for the purpose above.\n"
            "- Disclosure is limited to employees and advisors who need to know.\n\n"
            "## 3. Term\n\n"
            "These obligations last for {{termYears}} years from the date of this Agreement.\n\n"
            "## 4. Governing Law\n\n"
            "This Agreement is governed by the laws of the Province of {{province}} and the federal laws of Canada "
            "applicable there.\n\n"
            "{{firstPartyName}}: ____________________\n\n"
            "{{secondPartyName}}: ____________________\n"
        ),
        "fields": [
            {"name": "effectiveDate", "label": "Effective Date", "type": "date", "required": True},
            {"name": "firstPartyName", "label": "First Party Name", "type": "text", "required": True},
            {"name": "secondPartyName", "label": "Second Party Name", "type": "text", "required": True},
            {"name": "purpose", "label": "Purpose", "type": "textarea", "required": True},
            {"name": "termYears", "label": "Term (years)", "type": "number", "required": True},
            {"name": "province", "label": "Province", "type": "text", "required": True},
        ],
    },
    {
        "template_type": "civil",
        "subcategory": "demand",
        "title": "Mise en demeure",
        "description": "Mise en demeure de payer une somme due avant de s'adresser au tribunal",
        "language": "fr",
        "jurisdiction": "Québec",
        "template_content": (
            "# Mise en demeure\n\n"
            "{{date}}\n\n"
            "Destinataire : {{recipientName}}\n\n"
            "Madame, Monsieur,\n\n"
            "Par la présente, je vous mets en demeure de me payer la somme de {{amountOwing}} $ "
            "due pour {{reason}}, au plus tard le {{paymentDeadline}}.\n\n"
            "À défaut de paiement dans ce délai, je m'adresserai à la Division des petites créances "
            "de la Cour du Québec sans autre avis.\n\n"
            "{{senderName}}\n"
        ),
        "fields": [
            {"name": "date", "label": "Date", "type": "date", "required": True},
            {"name": "recipientName", "label": "Nom du destinataire", "type": "text", "required": True},
            {"name": "amountOwing", "label": "Montant dû", "type": "number", "required": True},
            {"name": "reason", "label": "Motif", "type": "textarea", "required": True},
            {"name": "paymentDeadline", "label": "Date limite", "type": "date", "required": True},
            {"name": "senderName", "label": "Votre nom", "type": "text", "required": True},
        ],
    },
]

CATEGORIES: List[Dict[str, Any]] = [
    {"slug": "civil-procedure", "name": "Civil Procedure", "icon": "scale", "order": 1,
     "description": "Procedures for civil cases in Canadian courts"},
    {"slug": "criminal-procedure", "name": "Criminal Procedure", "icon": "gavel", "order": 2,
     "description": "Procedures for criminal cases in Canadian courts"},
    {"slug": "family-court", "name": "Family Court", "icon": "home", "order": 3,
     "description": "Procedures for family law cases in Canadian courts"},
    {"slug": "small-claims", "name": "Small Claims", "icon": "coins", "order": 4,
     "description": "Procedures for small claims court in Canadian provinces"},
    {"slug": "administrative-tribunals", "name": "Administrative Tribunals", "icon": "building", "order": 5,
     "description": "Procedures for administrative tribunals in Canada"},
]

PROCEDURES: List[Dict[str, Any]] = [
    {
        "category": "small-claims",
        "slug": "ontario-small-claims",
        "name": "Ontario Small Claims Court Procedure",
        "description": "Filing and pursuing a small claims case in Ontario for claims up to $35,000",
        "overview": "Small Claims Court handles claims for money or property worth up to $35,000. "
                    "Most parties represent themselves.",
        "jurisdiction": "Ontario",
        "estimated_timeframe": "4-8 months",
        "cost_range": "$102 filing fee plus service costs",
        "required_documents": [
            "Completed Form 7A (Plaintiff's Claim)",
            "Evidence supporting your claim",
            "Government-issued ID",
        ],
        "steps": [
            {
                "title": "Prepare your claim",
                "description": "Gather all evidence and documentation related to your claim",
                "estimated_time": "1-2 weeks",
                "required_documents": ["Contracts or agreements", "Receipts or invoices", "Correspondence"],
                "instructions": "Collect and organize all documentation that supports your claim. Make copies of everything.",
                "tips": ["Make a timeline of events", "Calculate the exact amount you are claiming"],
                "warnings": ["Claims must be filed within 2 years of the incident",
                             "You can only claim up to $35,000 in Small Claims Court"],
            },
            {
                "title": "File your claim",
                "description": "Complete Form 7A (Plaintiff's Claim) and file it with the court",
                "estimated_time": "1 day",
                "required_documents": ["Completed Form 7A", "Filing fee payment"],
                "instructions": "File Form 7A at the court where the incident occurred or where the defendant lives or works.",
                "tips": ["Double-check all defendant information", "Keep your filing receipt"],
                "warnings": ["File in the correct court location"],
            },
            {
                "title": "Serve the defendant",
                "description": "Provide a copy of the claim to the defendant within 6 months of filing",
                "estimated_time": "1-2 weeks",
                "required_documents": ["Copy of filed Form 7A", "Form 9A (Certificate of Service)"],
                "instructions": "Have someone over 18 who is not a party serve the claim, then file Form 9A.",
                "tips": ["Consider using a professional process server"],
                "warnings": ["You cannot serve the documents yourself"],
            },
            {
                "title": "Wait for a response",
                "description": "The defendant has 20 days to file a defence",
                "estimated_time": "20 days",
                "required_documents": [],
                "instructions": "If no defence is filed, you can request a default judgment with Form 20A.",
                "tips": ["Mark the calendar for the 20-day deadline"],
                "warnings": ["The defendant may file a counterclaim against you"],
            },
            {
                "title": "Settlement conference",
                "description": "Mandatory meeting with a judge to try to settle the case",
                "estimated_time": "1-2 hours",
                "required_documents": ["Form 18A (Settlement Conference Brief)", "List of witnesses"],
                "instructions": "Serve and file Form 18A at least 14 days before the conference.",
                "tips": ["Be prepared to compromise"],
                "warnings": ["Failing to attend can result in penalties or dismissal"],
            },
            {
                "title": "Trial preparation",
                "description": "If no settlement is reached, prepare for trial",
                "estimated_time": "1-3 months",
                "required_documents": ["Witness list", "Evidence binders"],
                "instructions": "Organize your evidence and summon any witnesses you need.",
                "tips": ["Practise presenting your case in plain language"],
                "warnings": ["Serve documents you rely on at least 30 days before trial"],
            },
            {
                "title": "Trial",
                "description": "Present your case before a judge",
                "estimated_time": "Half a day to one day",
                "required_documents": ["All evidence and copies for the judge and the other party"],
                "instructions": "Arrive early, present your evidence and question witnesses.",
                "tips": ["Address the judge as Your Honour"],
                "warnings": ["Judgment may be delivered later in writing"],
            },
        ],
    },
    {
        "category": "family-court",
        "slug": "ontario-simple-divorce",
        "name": "Ontario Simple Divorce",
        "description": "Uncontested divorce with no other claims such as support or property",
        "overview": "A simple divorce asks the court for a divorce only. Either spouse can apply alone, "
                    "or both can apply jointly.",
        "jurisdiction": "Ontario",
        "estimated_timeframe": "4-6 months",
        "cost_range": "$669 in court fees",
        "required_documents": ["Form 8A (Application)", "Marriage certificate", "Form 36 (Affidavit for Divorce)"],
        "steps": [
            {
                "title": "Complete the application",
                "description": "Fill in Form 8A (Application - Divorce)",
                "estimated_time": "1 day",
                "required_documents": ["Form 8A", "Marriage certificate"],
                "instructions": "Complete Form 8A and attach your marriage certificate.",
                "tips": ["Use the Ontario Court Forms Assistant"],
                "warnings": ["You must have been separated for at least one year"],
            },
            {
                "title": "File and serve",
                "description": "File the application and serve your spouse",
                "estimated_time": "2-4 weeks",
                "required_documents": ["Filed Form 8A", "Form 6B (Affidavit of Service)"],
                "instructions": "File at the family court and serve your spouse unless applying jointly.",
                "tips": ["Joint applications do not need to be served"],
                "warnings": ["You cannot serve your spouse yourself"],
            },
            {
                "title": "Request the divorce order",
                "description": "File the affidavit and draft divorce order",
                "estimated_time": "2-4 months",
                "required_documents": ["Form 36", "Form 25A (Divorce Order)"],
                "instructions": "After 30 days without an answer, file Form 36 and a draft order.",
                "tips": ["Include three stamped envelopes with your filing"],
                "warnings": ["The divorce takes effect 31 days after the order"],
            },
        ],
    },
]


def seed_plans(db: Session) -> int:
    created = 0
    for data in PLANS:
        plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.tier == data["tier"]).first()
        if plan is None:
            db.add(SubscriptionPlan(**data))
            created += 1
        else:
            for field, value in data.items():
                setattr(plan, field, value)
    db.flush()
    logger.info(f"Subscription plans seeded ({created} new)")
    return created


def seed_templates(db: Session) -> int:
    created = 0
    for data in TEMPLATES:
        template = (
            db.query(DocumentTemplate)
            .filter(DocumentTemplate.title == data["title"], DocumentTemplate.language == data["language"])
            .first()
        )
        if template is None:
            db.add(DocumentTemplate(**data))
            created += 1
        else:
            for field, value in data.items():
                setattr(template, field, value)
    db.flush()
    logger.info(f"Document templates seeded ({created} new)")
    return created


def seed_court_procedures(db: Session) -> int:
    created = 0
    categories = {}
    for data in CATEGORIES:
        category = db.query(CourtProcedureCategory).filter(CourtProcedureCategory.slug == data["slug"]).first()
        if category is None:
            category = CourtProcedureCategory(**data)
            db.add(category)
            created += 1
        else:
            for field, value in data.items():
                setattr(category, field, value)
        categories[data["slug"]] = category
    db.flush()

    for data in PROCEDURES:
        fields = {k: v for k, v in data.items() if k not in ("category", "steps")}
        procedure = db.query(CourtProcedure).filter(CourtProcedure.slug == data["slug"]).first()
        if procedure is None:
            procedure = CourtProcedure(category_id=categories[data["category"]].id, **fields)
            db.add(procedure)
            created += 1
        else:
            procedure.category_id = categories[data["category"]].id
            for field, value in fields.items():
                setattr(procedure, field, value)
        db.flush()

        existing = {step.step_order: step for step in procedure.steps}
        for order, step_data in enumerate(data["steps"], start=1):
            step = existing.get(order)
            if step is None:
                procedure.steps.append(CourtProcedureStep(step_order=order, **step_data))
            else:
                for field, value in step_data.items():
                    setattr(step, field, value)
    db.flush()
    logger.info(f"Court procedure catalogue seeded ({created} new categories and procedures)")
    return created


SEEDERS = {
    "plans": seed_plans,
    "templates": seed_templates,
    "court-procedures": seed_court_procedures,
}


def seed_all(db: Session, only=None) -> Dict[str, int]:
    results = {}
    for name, seeder in SEEDERS.items():
        if only and name not in only:
            continue
        results[name] = seeder(db)
    return results
