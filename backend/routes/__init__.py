# routes -- API routers mounted under /api/v1
#
#   dashboards -- dashboards, duplication, moves, tabs, tile moves
#   charts     -- saved chart CRUD
#   spaces     -- space CRUD
#   content    -- cross-project content listing
#   search     -- project search
#   categories -- admin-service categories + user_dashboard_category CRUD
#   schedulers -- scheduled deliveries
#   logs       -- frontend log ingestion
#   uploads    -- presigned upload URLs
#   results    -- cached query results
