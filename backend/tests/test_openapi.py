from approvals.openapi import ENDPOINTS


def test_openapi_spec_available(client):
    resp = client.get('/openapi.json')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['openapi'].startswith('3.')
    for path in ('/auth/login', '/requests', '/requests/{request_id}/decide', '/cart/checkout', '/managers/{manager_id}/permissions'):
        assert path in body['paths']


def test_guarded_operations_document_capabilities(client):
    spec = client.get('/openapi.json').get_json()
    decide = spec['paths']['/requests/{request_id}/decide']['post']
    assert set(decide['x-required-capabilities']) == {'approve_applications', 'reject_applications', 'full_access'}
    assert spec['paths']['/managers/{manager_id}']['delete']['x-required-capabilities'] == ['full_access']
    assert spec['paths']['/auth/login']['post']['security'] == []
    assert 'x-required-capabilities' not in spec['paths']['/healthz']['get']


def test_list_caching_headers_documented(client):
    spec = client.get('/openapi.json').get_json()
    listing = spec['paths']['/requests']['get']
    assert 'ETag' in listing['responses']['200']['headers']
    assert '304' in listing['responses']
    refs = [p.get('$ref', '') for p in listing['parameters']]
    assert any(r.endswith('LimitParam') for r in refs)


def test_documented_routes_exist(app_instance):
    rules = {(str(r.rule), m.lower()) for r in app_instance.url_map.iter_rules() for m in r.methods}
    for path, method, *_ in ENDPOINTS:
        flask_path = path.replace('{course_id}', '<course_id>').replace('{capability}', '<capability>')
        for name in ('request_id', 'cart_item_id', 'manager_id'):
            flask_path = flask_path.replace('{%s}' % name, '<int:%s>' % name)
        assert (flask_path, method) in rules, f'{method.upper()} {path} not routed'


def test_capability_guards_match_documentation(app_instance):
    by_path = {(p, m): caps for p, m, _s, caps, _l in ENDPOINTS}
    for rule in app_instance.url_map.iter_rules():
        view = app_instance.view_functions[rule.endpoint]
        declared = getattr(view, 'required_capabilities', None)
        if declared is None:
            continue
        doc_path = str(rule.rule).replace('<int:', '{').replace('<', '{').replace('>', '}')
        methods = [m.lower() for m in rule.methods if m not in ('HEAD', 'OPTIONS')]
        for m in methods:
            assert by_path[(doc_path, m)] == declared, f'{m.upper()} {doc_path}'
