from lawcatalog.cli import main

raise SystemExit(main())
