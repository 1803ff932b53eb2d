"""Schema v1 - Marketplace tables.

This version includes tables for:
- Catalog units with cached market prices
- User profiles
- Seller listings
- Buyer cart items
- Pending sales and their change feed
"""

UPDATED_AT_BODY = '''
BEGIN
    NEW.updated_at = now();
    RETURN NEW;
END;
'''

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'profiles',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True},
                {'name': 'username', 'type': 'TEXT'},
                {'name': 'whatsapp', 'type': 'TEXT'},
                {'name': 'avatar_url', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ]
        },
        {
            'name': 'units',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'name', 'type': 'TEXT', 'nullable': False},
                {'name': 'collection', 'type': 'TEXT', 'nullable': False},
                {'name': 'unit_number', 'type': 'TEXT', 'nullable': False},
                {'name': 'image_url', 'type': 'TEXT'},
                {'name': 'min_price', 'type': 'NUMERIC(10,2)'},
                {'name': 'avg_price', 'type': 'NUMERIC(10,2)'},
                {'name': 'max_price', 'type': 'NUMERIC(10,2)'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'unique': [
                ['collection', 'unit_number']
            ]
        },
        {
            'name': 'listings',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'unit_id', 'type': 'UUID', 'nullable': False},
                {'name': 'seller_id', 'type': 'UUID', 'nullable': False},
                {'name': 'price', 'type': 'NUMERIC(10,2)', 'nullable': False},
                {'name': 'quantity', 'type': 'INT4', 'nullable': False},
                {'name': 'available_quantity', 'type': 'INT4', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'name': 'listings_unit_id_fkey', 'columns': ['unit_id'],
                 'references': 'units(id)', 'on_delete': 'CASCADE'},
                {'name': 'listings_seller_id_fkey', 'columns': ['seller_id'],
                 'references': 'profiles(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_listings_unit_price', 'columns': ['unit_id', 'price']},
                {'name': 'idx_listings_seller', 'columns': ['seller_id']}
            ]
        },
        {
            'name': 'cart_items',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'user_id', 'type': 'UUID', 'nullable': False},
                {'name': 'listing_id', 'type': 'UUID', 'nullable': False},
                {'name': 'quantity', 'type': 'INT4', 'nullable': False, 'default': '1'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'unique': [
                ['user_id', 'listing_id']
            ],
            'foreign_keys': [
                {'name': 'cart_items_user_id_fkey', 'columns': ['user_id'],
                 'references': 'profiles(id)', 'on_delete': 'CASCADE'},
                {'name': 'cart_items_listing_id_fkey', 'columns': ['listing_id'],
                 'references': 'listings(id)', 'on_delete': 'CASCADE'}
            ]
        },
        {
            'name': 'pending_sales',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'listing_id', 'type': 'UUID', 'nullable': False},
                {'name': 'buyer_id', 'type': 'UUID', 'nullable': False},
                {'name': 'seller_id', 'type': 'UUID', 'nullable': False},
                {'name': 'quantity', 'type': 'INT4', 'nullable': False},
                {'name': 'price', 'type': 'NUMERIC(10,2)', 'nullable': False},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'pending'",
                 'check': "status IN ('pending', 'approved', 'rejected')"},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'name': 'pending_sales_listing_id_fkey', 'columns': ['listing_id'],
                 'references': 'listings(id)', 'on_delete': 'CASCADE'},
                {'name': 'pending_sales_buyer_id_fkey', 'columns': ['buyer_id'],
                 'references': 'profiles(id)'},
                {'name': 'pending_sales_seller_id_fkey', 'columns': ['seller_id'],
                 'references': 'profiles(id)'}
            ],
            'indexes': [
                {'name': 'idx_pending_sales_seller_status', 'columns': ['seller_id', 'status']},
                {'name': 'idx_pending_sales_buyer_status', 'columns': ['buyer_id', 'status']}
            ]
        }
    ],
    'triggers': [
        {
            'name': 'trg_listings_updated_at',
            'table': 'listings',
            'timing': 'BEFORE',
            'event': 'UPDATE',
            'function_name': 'set_updated_at',
            'function_body': UPDATED_AT_BODY
        },
        {
            'name': 'trg_pending_sales_updated_at',
            'table': 'pending_sales',
            'timing': 'BEFORE',
            'event': 'UPDATE',
            'function_name': 'set_updated_at',
            'function_body': UPDATED_AT_BODY
        },
        {
            'name': 'trg_pending_sales_notify',
            'table': 'pending_sales',
            'timing': 'AFTER',
            'event': 'INSERT OR UPDATE OR DELETE',
            'function_name': 'notify_pending_sales_change',
            'function_body': '''
DECLARE
    row_data RECORD;
BEGIN
    IF TG_OP = 'DELETE' THEN
        row_data := OLD;
    ELSE
        row_data := NEW;
    END IF;
    PERFORM pg_notify(
        'pending_sales_changes',
        json_build_object(
            'event', TG_OP,
            'id', row_data.id,
            'buyer_id', row_data.buyer_id,
            'seller_id', row_data.seller_id,
            'status', row_data.status
        )::text
    );
    RETURN row_data;
END;
'''
        }
    ]
}
