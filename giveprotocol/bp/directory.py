# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

from flask import Blueprint, request, jsonify
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from ..database import auto_commit, db
from ..errors import InputValidationError, StoreError
from ..models.profiles import Organization, Volunteer
import logging

logger = logging.getLogger(__name__)
directory_bp = Blueprint('directory', __name__)

def _require_fields(data, fields):
    missing = [f"Missing required field: {field}" for field in fields if not data.get(field)]
    if missing:
        raise InputValidationError(missing)

# GET all volunteers
@directory_bp.route('/volunteers', methods=['GET'])
def get_all_volunteers():
    volunteers = db.session.execute(select(Volunteer).order_by(Volunteer.name)).scalars().all()
    logger.info(f"Fetched {len(volunteers)} volunteers")
    return jsonify([v.to_dict() for v in volunteers])

# POST create a new volunteer
@directory_bp.route('/volunteers', methods=['POST'])
def create_volunteer():
    data = request.get_json(silent=True) or {}
    _require_fields(data, ['name', 'email'])

    email = data['email'].strip().lower()
    existing = db.session.execute(select(Volunteer).where(Volunteer.email == email)).scalar_one_or_none()
    if existing is not None:
        return jsonify({'error': 'Volunteer with this email already exists'}), 400

    volunteer = Volunteer(name=data['name'].strip(), email=email, phone=data.get('phone'))
    try:
        with auto_commit() as session:
            session.add(volunteer)
    except SQLAlchemyError as e:
        raise StoreError("Failed to create volunteer", e)

    logger.info(f"Created volunteer id={volunteer.id} name={volunteer.name}")
    return jsonify(volunteer.to_dict()), 201

# GET organizations, optionally filtered by ?q= and ?verified=true
@directory_bp.route('/organizations', methods=['GET'])
def search_organizations():
    query = select(Organization).order_by(Organization.name)
    term = (request.args.get('q') or '').strip()
    if term:
        query = query.where(Organization.name.ilike(f"%{term}%"))
    if request.args.get('verified', '').lower() == 'true':
        query = query.where(Organization.is_verified.is_(True))

    organizations = db.session.execute(query.limit(50)).scalars().all()
    return jsonify([o.to_dict() for o in organizations])

# POST register an organization
@directory_bp.route('/organizations', methods=['POST'])
def create_organization():
    data = request.get_json(silent=True) or {}
    _require_fields(data, ['name'])

    organization = Organization(
        name=data['name'].strip(),
        contact_email=data.get('contact_email'),
        location=data.get('location'),
        is_verified=bool(data.get('is_verified', False)),
    )
    try:
        with auto_commit() as session:
            session.add(organization)
    except SQLAlchemyError as e:
        raise StoreError("Failed to create organization", e)

    logger.info(f"Created organization id={organization.id} name={organization.name} verified={organization.is_verified}")
    return jsonify(organization.to_dict()), 201
