from nlquery.cli import main

raise SystemExit(main())
