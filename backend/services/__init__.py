# backend.services -- domain services used by the routers
#
#   access             -- project roles + space visibility rules
#   dashboard_service  -- dashboards, tabs, tiles, viewer category filtering
#   chart_service      -- saved chart CRUD
#   space_service      -- space CRUD, cascading to the content of deleted spaces
#   content_service    -- cross-project content listing
#   search_service     -- project search
#   category_service   -- admin-service categories, user dashboard sync, mapping CRUD
#   scheduler_service  -- scheduled delivery CRUD
#   log_service        -- frontend log ingestion
#   upload_service     -- presigned upload URLs
