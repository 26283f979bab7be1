"""Marketing admin blueprint - banners, home blocks, category tiles and combo offers."""
from flask import Blueprint, request, jsonify
from storefront.database import get_session
from storefront.forms import parse_form, get_json_body
from storefront.forms.marketing_forms import (
    BannerForm, HomeBlockForm, ComboOfferForm, CategorySectionForm, CategoryTileForm
)
from storefront.middleware import require_admin
from storefront.services import marketing_service, combo_service
from storefront.services.layout_service import layout_rows
from storefront.exceptions import BusinessLogicError

marketing_bp = Blueprint('marketing', __name__, url_prefix='/admin/marketing')


# ---------------------------------------------------------------------------
# Banners
# ---------------------------------------------------------------------------

@marketing_bp.route('/banners')
@require_admin
def banners():
    banners = marketing_service.list_banners(get_session(), banner_type=request.args.get('type'))
    return {'banners': [b.to_dict() for b in banners]}


@marketing_bp.route('/banners/preview')
@require_admin
def preview_banner_rows():
    """Row packing preview of the section banners attached to one block and placement."""
    block_id = request.args.get('block_id', type=int)
    placement = request.args.get('placement', 'below')
    banners = [
        b for b in marketing_service.list_banners(get_session(), banner_type='section', active_only=True)
        if b.target_block_id == block_id and (b.relative_placement or 'below') == placement
    ]
    rows = layout_rows(banners, lambda b: b.display_width, lambda b: b.alignment, lambda b: b.to_dict())
    return {'rows': rows}


@marketing_bp.route('/banners', methods=['POST'])
@require_admin
def create_banner():
    data = parse_form(BannerForm)
    banner = marketing_service.save_banner(get_session(), data)
    return jsonify({'status': 'success', 'banner': banner.to_dict()}), 201


@marketing_bp.route('/banners/<int:banner_id>', methods=['PUT', 'PATCH'])
@require_admin
def update_banner(banner_id):
    data = parse_form(BannerForm, partial=True)
    banner = marketing_service.save_banner(get_session(), data, banner_id)
    return {'status': 'success', 'banner': banner.to_dict()}


@marketing_bp.route('/banners/<int:banner_id>', methods=['DELETE'])
@require_admin
def delete_banner(banner_id):
    marketing_service.delete_banner(get_session(), banner_id)
    return {'status': 'success'}


# ---------------------------------------------------------------------------
# Home blocks
# ---------------------------------------------------------------------------

@marketing_bp.route('/home-blocks')
@require_admin
def home_blocks():
    blocks = marketing_service.list_home_blocks(get_session())
    return {'home_blocks': [b.to_dict() for b in blocks]}


@marketing_bp.route('/home-blocks', methods=['POST'])
@require_admin
def create_home_block():
    data = parse_form(HomeBlockForm)
    block = marketing_service.save_home_block(get_session(), data)
    return jsonify({'status': 'success', 'home_block': block.to_dict()}), 201


@marketing_bp.route('/home-blocks/<int:block_id>', methods=['PUT', 'PATCH'])
@require_admin
def update_home_block(block_id):
    data = parse_form(HomeBlockForm, partial=True)
    block = marketing_service.save_home_block(get_session(), data, block_id)
    return {'status': 'success', 'home_block': block.to_dict()}


@marketing_bp.route('/home-blocks/<int:block_id>', methods=['DELETE'])
@require_admin
def delete_home_block(block_id):
    marketing_service.delete_home_block(get_session(), block_id)
    return {'status': 'success'}


@marketing_bp.route('/home-blocks/reorder', methods=['POST'])
@require_admin
def reorder_home_blocks():
    ids = get_json_body().get('ids')
    if not isinstance(ids, list):
        raise BusinessLogicError('ids must be a list of block ids')
    blocks = marketing_service.reorder_home_blocks(get_session(), ids)
    return {'status': 'success', 'home_blocks': [b.to_dict() for b in blocks]}


# ---------------------------------------------------------------------------
# Shop by category section
# ---------------------------------------------------------------------------

@marketing_bp.route('/category-section')
@require_admin
def category_section():
    db_session = get_session()
    return {
        'settings': marketing_service.get_category_section(db_session),
        'preview': marketing_service.build_category_section(db_session),
    }


@marketing_bp.route('/category-section', methods=['PUT'])
@require_admin
def update_category_section():
    data = parse_form(CategorySectionForm, partial=True)
    if 'categories' in data:
        if not isinstance(data['categories'] or [], list):
            raise BusinessLogicError('categories must be a list')
        tiles = []
        for item in data['categories'] or []:
            if not isinstance(item, dict):
                raise BusinessLogicError('Each category entry must be an object')
            tiles.append(parse_form(CategoryTileForm, data=item))
        data['categories'] = tiles
    section = marketing_service.save_category_section(get_session(), data)
    return {'status': 'success', 'settings': section}


# ---------------------------------------------------------------------------
# Combo offers
# ---------------------------------------------------------------------------

@marketing_bp.route('/combos')
@require_admin
def combos():
    return {'combos': combo_service.list_combo_offers(get_session())}


@marketing_bp.route('/combos', methods=['POST'])
@require_admin
def create_combo():
    data = parse_form(ComboOfferForm)
    db_session = get_session()
    combo = combo_service.save_combo_offer(db_session, data)
    return jsonify({'status': 'success', 'combo': combo_service.serialize_combo(db_session, combo)}), 201


@marketing_bp.route('/combos/<int:combo_id>', methods=['PUT', 'PATCH'])
@require_admin
def update_combo(combo_id):
    data = parse_form(ComboOfferForm, partial=True)
    db_session = get_session()
    combo = combo_service.save_combo_offer(db_session, data, combo_id)
    return {'status': 'success', 'combo': combo_service.serialize_combo(db_session, combo)}


@marketing_bp.route('/combos/<int:combo_id>', methods=['DELETE'])
@require_admin
def delete_combo(combo_id):
    combo_service.delete_combo_offer(get_session(), combo_id)
    return {'status': 'success'}
