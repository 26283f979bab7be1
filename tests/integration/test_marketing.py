"""
Integration tests for banners, home blocks, the category section and combos.
"""

from decimal import Decimal


def _block(client, **data):
    data.setdefault('type', 'promo_html')
    response = client.post('/admin/marketing/home-blocks', json=data)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['home_block']


def _banner(client, **data):
    data.setdefault('image_url', '/static/banners/offer.jpg')
    response = client.post('/admin/marketing/banners', json=data)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['banner']


class TestBanners:

    def test_defaults(self, admin_client):
        """Test banner defaults."""
        banner = _banner(admin_client, title='Diwali sale')
        assert banner['type'] == 'hero'
        assert banner['display_width'] == 100
        assert banner['alignment'] == 'center'
        assert banner['is_active'] is True

    def test_image_is_required(self, admin_client):
        """Test that a banner needs an image."""
        response = admin_client.post('/admin/marketing/banners', json={'title': 'No image'})
        assert response.status_code == 400
        assert 'image_url' in response.get_json()['errors']

    def test_width_must_be_allowed(self, admin_client):
        """Test that banner widths are validated."""
        response = admin_client.post('/admin/marketing/banners', json={
            'image_url': '/x.jpg', 'type': 'section', 'display_width': 60
        })
        assert response.status_code == 400

    def test_unknown_target_block(self, admin_client):
        """Test a banner targeting an unknown block."""
        response = admin_client.post('/admin/marketing/banners', json={
            'image_url': '/x.jpg', 'type': 'section', 'target_block_id': 999
        })
        assert response.status_code == 404

    def test_hero_banner_never_targets_a_block(self, admin_client):
        """Test that hero banners never target a block."""
        block = _block(admin_client)
        banner = _banner(admin_client, type='hero', target_block_id=block['id'])
        assert banner['target_block_id'] is None

    def test_preview_rows(self, admin_client):
        """Test the banner row preview."""
        block = _block(admin_client)
        for width in (50, 25, 75):
            _banner(admin_client, type='section', target_block_id=block['id'], display_width=width)
        rows = admin_client.get(f"/admin/marketing/banners/preview?block_id={block['id']}").get_json()['rows']
        assert [r['total_width'] for r in rows] == [75, 75]
        assert rows[0]['is_partial'] is True
        assert rows[0]['columns'] == [2, 1]


class TestHomeBlocks:

    def test_category_block_needs_category(self, admin_client):
        """Test that a category block needs a category."""
        response = admin_client.post('/admin/marketing/home-blocks', json={'type': 'category_products'})
        assert response.status_code == 400

    def test_unknown_type(self, admin_client):
        """Test an unknown block type."""
        response = admin_client.post('/admin/marketing/home-blocks', json={'type': 'carousel3d'})
        assert response.status_code == 400
        assert 'type' in response.get_json()['errors']

    def test_reorder(self, admin_client):
        """Test reordering home blocks."""
        first = _block(admin_client, title='First')
        second = _block(admin_client, title='Second')
        body = admin_client.post('/admin/marketing/home-blocks/reorder',
                                 json={'ids': [second['id'], first['id']]}).get_json()
        assert [b['title'] for b in body['home_blocks']] == ['Second', 'First']

    def test_reorder_unknown_block(self, admin_client):
        """Test reordering with an unknown block."""
        response = admin_client.post('/admin/marketing/home-blocks/reorder', json={'ids': [12345]})
        assert response.status_code == 404


class TestHomeLayout:

    def test_layout(self, admin_client, client, category, product_factory):
        """Test the assembled home layout."""
        product_factory(title='Featured Tea', is_featured=True)
        product_factory(title='Plain Tea')

        featured = _block(admin_client, type='featured_products', title='Featured')
        promo = _block(admin_client, type='promo_html', title='Promo', payload={'html': '<b>Sale</b>'})
        _banner(admin_client, title='Hero')
        _banner(admin_client, type='section', title='Top', target_block_id=featured['id'],
                relative_placement='above', display_width=50)
        _banner(admin_client, type='section', title='Bottom', target_block_id=promo['id'], display_width=100)
        _banner(admin_client, type='section', title='Loose', display_width=25)

        client.post('/auth/logout')
        layout = client.get('/').get_json()

        assert [b['title'] for b in layout['hero']] == ['Hero']
        assert [s['block']['title'] for s in layout['sections']] == ['Featured', 'Promo']

        featured_section, promo_section = layout['sections']
        assert [p['title'] for p in featured_section['content']['products']] == ['Featured Tea']
        assert featured_section['above'][0]['items'][0]['title'] == 'Top'
        assert featured_section['above'][0]['alignment'] == 'center'
        assert featured_section['below'] == []

        assert promo_section['content'] == {'html': '<b>Sale</b>'}
        assert promo_section['below'][0]['alignment'] is None

        assert layout['trailing_banners'][0]['items'][0]['title'] == 'Loose'

    def test_banners_of_deleted_block_trail(self, admin_client):
        """Test that banners of a deleted block move to the trailing slot."""
        block = _block(admin_client, title='Temporary')
        _banner(admin_client, type='section', title='Orphan', target_block_id=block['id'])
        assert admin_client.delete(f"/admin/marketing/home-blocks/{block['id']}").status_code == 200

        layout = admin_client.get('/').get_json()
        assert layout['sections'] == []
        assert layout['trailing_banners'][0]['items'][0]['title'] == 'Orphan'

    def test_inactive_banners_are_hidden(self, admin_client):
        """Test that inactive banners are hidden."""
        _banner(admin_client, title='Old hero', is_active=False)
        assert admin_client.get('/').get_json()['hero'] == []


class TestCategorySection:

    def test_tiles_are_packed(self, admin_client, session, category):
        """Test that category tiles are packed into rows."""
        response = admin_client.put('/admin/marketing/category-section', json={
            'title': 'Shop by aisle',
            'categories': [
                {'category_id': category.id, 'display_width': 50, 'custom_label': 'Staples'},
                {'category_id': category.id, 'display_width': 50, 'is_visible': False},
            ],
        })
        assert response.status_code == 200

        section = admin_client.get('/').get_json()['category_section']
        assert section['title'] == 'Shop by aisle'
        assert len(section['rows']) == 1
        assert [t['label'] for t in section['rows'][0]['items']] == ['Staples']
        assert section['rows'][0]['is_partial'] is True

    def test_hidden_section(self, admin_client):
        """Test that a hidden section is left out."""
        admin_client.put('/admin/marketing/category-section', json={'is_visible': False})
        assert admin_client.get('/').get_json()['category_section'] is None

    def test_bad_tile_values(self, admin_client, category):
        """Test that malformed tiles are rejected with field errors."""
        response = admin_client.put('/admin/marketing/category-section', json={
            'categories': [{'category_id': category.id, 'display_width': 'wide'}]
        })
        assert response.status_code == 400
        assert 'display_width' in response.get_json()['errors']

        response = admin_client.put('/admin/marketing/category-section', json={
            'categories': [{'category_id': 'abc'}]
        })
        assert response.status_code == 400
        assert 'category_id' in response.get_json()['errors']

        response = admin_client.put('/admin/marketing/category-section', json={'categories': ['oops']})
        assert response.status_code == 400

    def test_unknown_category(self, admin_client):
        """Test a tile with an unknown category."""
        response = admin_client.put('/admin/marketing/category-section', json={
            'categories': [{'category_id': 4040}]
        })
        assert response.status_code == 404


class TestCombos:

    def test_create_and_list(self, admin_client, client, product, cheap_product):
        """Test creating and listing a combo."""
        response = admin_client.post('/admin/marketing/combos', json={
            'title': 'Kitchen Basics',
            'product_ids': [product.id, cheap_product.id],
            'combo_price': '260',
        })
        assert response.status_code == 201, response.get_json()
        combo = response.get_json()['combo']
        assert Decimal(combo['original_price']) == Decimal('290.00')
        assert Decimal(combo['discount_percentage']) == Decimal('10.34')
        assert [p['id'] for p in combo['products']] == [product.id, cheap_product.id]

        client.post('/auth/logout')
        combos = client.get('/combos').get_json()['combos']
        assert [c['slug'] for c in combos] == ['kitchen-basics']
        assert client.get('/combos/kitchen-basics').status_code == 200

    def test_combo_needs_two_products(self, admin_client, product):
        """Test that a combo needs two products."""
        response = admin_client.post('/admin/marketing/combos', json={
            'title': 'Solo', 'product_ids': [product.id], 'combo_price': '200'
        })
        assert response.status_code == 400
